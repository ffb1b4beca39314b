"""Task catalog: point weight and hours cost of each task kind."""

from collections.abc import Iterable

from missionboard.core.config import Constants
from missionboard.domain.home import Home
from missionboard.domain.task import TaskKind


TASK_POINTS: dict[TaskKind, int] = {
    TaskKind.CLEANING: 3,
    TaskKind.GARDENING: 2,
    TaskKind.ARRIVAL: 1,
    TaskKind.DEPARTURE: 1,
}


def points_of(kind: TaskKind) -> int:
    """Return the point weight of a task kind."""
    return TASK_POINTS[kind]


def hours_of(home: Home, kind: TaskKind) -> float:
    """Return how many hours a task kind takes on a given home.

    Cleaning and gardening depend on the home's configuration; arrival and departure are fixed.
    """
    match kind:
        case TaskKind.CLEANING:
            return home.hours_of_cleaning
        case TaskKind.GARDENING:
            return home.hours_of_gardening
        case TaskKind.ARRIVAL:
            return Constants.ARRIVAL_HOURS
        case TaskKind.DEPARTURE:
            return Constants.DEPARTURE_HOURS


def mission_hours(home: Home, tasks: Iterable[TaskKind]) -> float:
    """Estimated hours of a mission: sum of its task hours."""
    return sum(hours_of(home, kind) for kind in set(tasks))
