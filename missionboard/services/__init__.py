from missionboard.services import (
    duplicate_detector,
    points_service,
    task_catalog,
)


__all__ = [
    "duplicate_detector",
    "points_service",
    "task_catalog",
]
