from .booking import (
	DurationClass,
	Reservation,
	ReservationConflictError,
	UnbookableDateError,
	available_start_hours,
	can_book,
	conflicting_hours,
	is_date_bookable,
	occupied_hours,
)
from .catalog import ADD_ONS, SPACES, Space, find_space
from .pricing import DEFAULT_RATE_TABLE, RateTable, compute_price, format_price, load_rate_table, round_price
from .submission import BookingRequest, ReservationStore, ValidationError, assemble_reservation, check_hourly_fields, submit_reservation
from .yaml_store import ReservationStorageError, ReservationYamlRepository, generate_sample_reservations

__all__ = [
	"DurationClass",
	"Reservation",
	"ReservationConflictError",
	"UnbookableDateError",
	"available_start_hours",
	"can_book",
	"conflicting_hours",
	"is_date_bookable",
	"occupied_hours",
	"ADD_ONS",
	"SPACES",
	"Space",
	"find_space",
	"DEFAULT_RATE_TABLE",
	"RateTable",
	"compute_price",
	"format_price",
	"load_rate_table",
	"round_price",
	"BookingRequest",
	"ReservationStore",
	"ValidationError",
	"assemble_reservation",
	"check_hourly_fields",
	"submit_reservation",
	"ReservationStorageError",
	"ReservationYamlRepository",
	"generate_sample_reservations",
]
