"""TripRequest ORM model — a rider's ride request and its assignment."""

import uuid
from datetime import datetime

from sqlalchemy import String, Float, DateTime, Text, Enum as PgEnum
from sqlalchemy.orm import Mapped, mapped_column

from vayaride.db.database import Base, utcnow


class TripRequest(Base):
    __tablename__ = "trip_requests"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    rider_chat_id: Mapped[str] = mapped_column(String(32), index=True, nullable=False)
    rider_name: Mapped[str] = mapped_column(String(255), nullable=False)
    rider_contact: Mapped[str | None] = mapped_column(String(64))
    dropoff: Mapped[str | None] = mapped_column(Text)

    # Pickup — set once, from a shared location
    pickup_lat: Mapped[float | None] = mapped_column(Float)
    pickup_lon: Mapped[float | None] = mapped_column(Float)

    # completed / cancelled are never produced by the bots
    status: Mapped[str] = mapped_column(
        PgEnum("pending", "accepted", "completed", "cancelled", name="trip_status"),
        default="pending",
        index=True,
    )
    driver_chat_id: Mapped[str | None] = mapped_column(String(32))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
