"""Driver ORM models — registration record and its ten document slots."""

import uuid
from datetime import datetime

from sqlalchemy import (
    String, Integer, Boolean, DateTime, ForeignKey, Text, UniqueConstraint,
    Enum as PgEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.orm.collections import attribute_keyed_dict

from vayaride.db.database import Base, utcnow

# Canonical upload order.
DOCUMENT_SLOTS: tuple[str, ...] = (
    "profilePhoto",
    "vehiclePhoto",
    "nationalId",
    "vehicleRegistration",
    "driversLicense",
    "insuranceCertificate",
    "pdpOrPsvBadge",
    "dekraCertificate",
    "policeClearance",
    "licenseDisc",
)

DOCUMENT_LABELS: dict[str, str] = {
    "profilePhoto": "Driver Profile Photo",
    "vehiclePhoto": "Vehicle Photo with Number Plate",
    "nationalId": "National Identity Document",
    "vehicleRegistration": "Vehicle Registration / LogBook",
    "driversLicense": "Driver's License",
    "insuranceCertificate": "Vehicle Insurance Certificate",
    "pdpOrPsvBadge": "PDP / PSV Badge",
    "dekraCertificate": "DEKRA Certificate",
    "policeClearance": "Police Clearance Certificate",
    "licenseDisc": "Vehicle License Disc",
}


class Driver(Base):
    __tablename__ = "drivers"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    chat_id: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    telegram_username: Mapped[str | None] = mapped_column(String(64))
    full_name: Mapped[str | None] = mapped_column(String(50))
    phone: Mapped[str | None] = mapped_column(String(20), unique=True)
    registration_step: Mapped[str] = mapped_column(
        PgEnum("name", "phone", "docs", "completed", name="registration_step"),
        default="name",
    )
    status: Mapped[str] = mapped_column(
        PgEnum("pending", "approved", "rejected", name="driver_status"),
        default="pending",
    )

    # Dashboard PIN (bcrypt hash, short-lived)
    pin_hash: Mapped[str | None] = mapped_column(String(128))
    pin_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    documents: Mapped[dict[str, "DriverDocument"]] = relationship(
        back_populates="driver",
        collection_class=attribute_keyed_dict("slot"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def has_document(self, slot: str) -> bool:
        """A slot counts as filled only once it has a storage URL."""
        doc = self.documents.get(slot)
        return doc is not None and bool(doc.cloud_url)

    @property
    def documents_complete(self) -> bool:
        return all(self.has_document(slot) for slot in DOCUMENT_SLOTS)

    @property
    def documents_filled(self) -> int:
        return sum(self.has_document(slot) for slot in DOCUMENT_SLOTS)

    def next_missing_slot(self) -> str | None:
        for slot in DOCUMENT_SLOTS:
            if not self.has_document(slot):
                return slot
        return None

    def add_or_update_document(
        self,
        slot: str,
        *,
        file_id: str,
        file_unique_id: str | None,
        cloud_url: str,
        format: str,
        size_bytes: int,
    ) -> "DriverDocument":
        """Fill a slot, overwriting whatever it held. Resets ``verified``."""
        if slot not in DOCUMENT_SLOTS:
            raise KeyError(slot)
        doc = self.documents.get(slot)
        if doc is None:
            doc = DriverDocument(slot=slot)
            self.documents[slot] = doc
        doc.file_id = file_id
        doc.file_unique_id = file_unique_id
        doc.cloud_url = cloud_url
        doc.format = format
        doc.size_bytes = size_bytes
        doc.uploaded_at = utcnow()
        doc.verified = False
        return doc


class DriverDocument(Base):
    __tablename__ = "driver_documents"
    __table_args__ = (UniqueConstraint("driver_id", "slot", name="uq_driver_document_slot"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    driver_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("drivers.id", ondelete="CASCADE"), nullable=False,
    )
    slot: Mapped[str] = mapped_column(String(40), nullable=False)
    file_id: Mapped[str | None] = mapped_column(String(255))
    file_unique_id: Mapped[str | None] = mapped_column(String(255))
    cloud_url: Mapped[str | None] = mapped_column(Text)
    format: Mapped[str | None] = mapped_column(String(16))
    size_bytes: Mapped[int | None] = mapped_column("bytes", Integer)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    verified: Mapped[bool] = mapped_column(Boolean, default=False)

    driver = relationship("Driver", back_populates="documents")
