from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class Space:
    space_id: str
    name: str
    category: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.space_id, "name": self.name, "category": self.category}


SPACES = [
    Space("room-a", "Meeting Room A", "meeting_room"),
    Space("room-b", "Meeting Room B", "meeting_room"),
    Space("office-1", "Private Office 1", "private_office"),
    Space("desk-1", "Hot Desk 1", "hot_desk"),
    Space("desk-2", "Hot Desk 2", "hot_desk"),
]
ADD_ONS = {
    "projector": "Projector",
    "whiteboard": "Whiteboard",
    "parking": "Parking Spot",
    "lockers": "Storage Locker",
    "printer": "Printer Access",
}


def find_space(space_id: str, spaces: Iterable[Space] = SPACES) -> Space | None:
    for space in spaces:
        if space.space_id == space_id:
            return space
    return None
