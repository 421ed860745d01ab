"""Pydantic schemas for the driver admin endpoints."""

from __future__ import annotations
import uuid
from datetime import datetime
from pydantic import BaseModel, Field


class DocumentResponse(BaseModel):
    slot: str
    file_id: str | None
    cloud_url: str | None
    format: str | None
    size_bytes: int | None
    uploaded_at: datetime
    verified: bool

    class Config:
        from_attributes = True


class DriverResponse(BaseModel):
    """Schema for returning a driver with their document slots."""
    id: uuid.UUID
    chat_id: str
    telegram_username: str | None
    full_name: str | None
    phone: str | None
    registration_step: str
    status: str
    documents_complete: bool
    documents: dict[str, DocumentResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReviewAction(BaseModel):
    """Schema for approving or rejecting a driver."""
    action: str = Field(..., pattern="^(APPROVE|REJECT)$")
    admin_note: str | None = None


class PinVerifyRequest(BaseModel):
    chat_id: str
    pin: str = Field(..., min_length=1, max_length=16)


class PinVerifyResponse(BaseModel):
    valid: bool
