"""Task kind enum."""

from enum import StrEnum


class TaskKind(StrEnum):
    """Kind of work a mission can include."""

    CLEANING = "cleaning"
    GARDENING = "gardening"
    ARRIVAL = "arrival"
    DEPARTURE = "departure"
