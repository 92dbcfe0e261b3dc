from enum import Enum


class DeskStatus(str, Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    ASSIGNED = "assigned"
    # only valid in schema version 1
    UNAVAILABLE = "unavailable"


SCHEMA_VERSION = 2

STATUSES_BY_SCHEMA_VERSION = {
    1: frozenset({DeskStatus.AVAILABLE, DeskStatus.BOOKED, DeskStatus.ASSIGNED, DeskStatus.UNAVAILABLE}),
    2: frozenset({DeskStatus.AVAILABLE, DeskStatus.BOOKED, DeskStatus.ASSIGNED}),
}

OCCUPIED_STATUSES = frozenset({DeskStatus.BOOKED, DeskStatus.ASSIGNED})


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    BGN = "BGN"
