"""
ORM Models for outage aggregation.

outages_groups holds one row per aggregated outage window;
outages_items records each raw occurrence that shaped a group's boundaries.
items.group_id carries no FK constraint.
"""
from sqlalchemy import BigInteger, Column, DateTime, Index, Integer, String, UniqueConstraint

from backend.app.core.database import Base
from backend.app.core.timeutil import utcnow

# SQLite only autoincrements INTEGER PRIMARY KEY
_BigId = BigInteger().with_variant(Integer(), "sqlite")


class OutageGroupORM(Base):
    __tablename__ = "outages_groups"

    id = Column(_BigId, primary_key=True, autoincrement=True)

    event_type = Column(String(255), nullable=False)
    controller_id = Column(String(255), nullable=False)

    # Inclusive bounds of the observed occurrence window
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)

    # Standard timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_time_event_controller", "start_time", "end_time", "event_type", "controller_id"),
        Index("idx_event_controller", "controller_id", "event_type"),
    )


class OutageItemORM(Base):
    __tablename__ = "outages_items"

    id = Column(_BigId, primary_key=True, autoincrement=True)
    group_id = Column(BigInteger, nullable=False)
    occurrence_time = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("group_id", "occurrence_time", name="idx_group_id_occurrence_time"),
    )
