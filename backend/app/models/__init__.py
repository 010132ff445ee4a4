"""Models package."""

from backend.app.models.outage_orm import OutageGroupORM, OutageItemORM

__all__ = [
    "OutageGroupORM",
    "OutageItemORM",
]
