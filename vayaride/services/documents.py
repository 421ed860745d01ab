"""
Document ingestion — one inbound file fills one document slot.

Pipeline per file:
  1. pick the slot (first unfilled, or the one named in the caption)
  2. classify the media type (image vs raw/PDF)
  3. resolve the Telegram download URL
  4. download the bytes (short timeout)
  5. upload to the media store (long timeout)
  6. record slot metadata; finish registration when no slot is left

Any failure raises before the record is touched, so the driver simply
resends the file.
"""

import logging
from dataclasses import dataclass

import httpx
from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import Message
from sqlalchemy.ext.asyncio import AsyncSession

from vayaride.config import settings
from vayaride.models.driver import Driver, DOCUMENT_SLOTS
from vayaride.services.exceptions import ExternalIOError, ValidationError
from vayaride.services.media_store import S3MediaStore
from vayaride.services.onboarding import complete_registration

logger = logging.getLogger(__name__)

IMAGE_FORMATS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}
PDF_MIME = "application/pdf"


@dataclass(frozen=True)
class IncomingFile:
    file_id: str
    file_unique_id: str | None = None
    mime_type: str | None = None
    is_photo: bool = False

    @classmethod
    def from_message(cls, message: Message) -> "IncomingFile | None":
        if message.photo:
            photo = message.photo[-1]  # Largest size
            return cls(photo.file_id, photo.file_unique_id, "image/jpeg", is_photo=True)
        if message.document:
            doc = message.document
            return cls(doc.file_id, doc.file_unique_id, doc.mime_type)
        return None


@dataclass(frozen=True)
class IngestResult:
    slot: str
    next_slot: str | None
    completed: bool


def classify(incoming: IncomingFile) -> tuple[str, str, str]:
    """Return (resource_type, format, content_type) or reject the file."""
    if incoming.is_photo:
        return "image", "jpg", "image/jpeg"
    mime = (incoming.mime_type or "").lower()
    if mime in IMAGE_FORMATS:
        return "image", IMAGE_FORMATS[mime], mime
    if mime == PDF_MIME:
        return "raw", "pdf", mime
    raise ValidationError("❌ Unsupported file type. Only JPG/PNG and PDF are allowed.")


def slot_from_caption(caption: str | None) -> str | None:
    """A caption naming a slot (key or 1-based number) targets that slot."""
    text = (caption or "").strip()
    if not text:
        return None
    if text.isdigit() and 1 <= int(text) <= len(DOCUMENT_SLOTS):
        return DOCUMENT_SLOTS[int(text) - 1]
    for slot in DOCUMENT_SLOTS:
        if slot.lower() == text.lower():
            return slot
    return None


async def resolve_file_url(bot: Bot, file_id: str) -> str:
    try:
        tg_file = await bot.get_file(file_id)
    except TelegramAPIError as e:
        logger.warning("Telegram getFile failed: file_id=%s, error=%s", file_id, e)
        raise ExternalIOError("❌ Could not fetch file from Telegram.") from e
    return bot.session.api.file_url(bot.token, tg_file.file_path)


async def download_file(url: str, timeout: float) -> bytes:
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.get(url)
    except httpx.HTTPError as e:
        logger.warning("Telegram download failed: %s", e)
        raise ExternalIOError("❌ Telegram download timed-out.") from e
    if resp.status_code != 200:
        logger.warning("Telegram download failed: status=%s", resp.status_code)
        raise ExternalIOError("❌ Telegram download timed-out.")
    return resp.content


async def ingest_document(
    session: AsyncSession,
    bot: Bot,
    driver: Driver,
    incoming: IncomingFile,
    media_store: S3MediaStore,
    slot: str | None = None,
) -> IngestResult | None:
    """
    Store one file into a document slot.

    Returns:
        None when every slot is already filled and no slot was named,
        otherwise which slot was stored and what comes next.

    Raises:
        ValidationError: unsupported file type.
        ExternalIOError: download or upload failed.
    """
    target = slot or driver.next_missing_slot()
    if target is None:
        return None

    resource_type, fmt, content_type = classify(incoming)

    # End the read transaction so no pooled connection is held across
    # the download and the upload; the slot is written in a new one.
    await session.commit()

    url = await resolve_file_url(bot, incoming.file_id)
    data = await download_file(url, settings.FILE_DOWNLOAD_TIMEOUT_SEC)

    uploaded = await media_store.upload(
        data,
        folder=f"{settings.MEDIA_FOLDER}/{driver.chat_id}",
        name=target,
        resource_type=resource_type,
        fmt=fmt,
        content_type=content_type,
        timeout=settings.MEDIA_UPLOAD_TIMEOUT_SEC,
    )

    driver.add_or_update_document(
        target,
        file_id=incoming.file_id,
        file_unique_id=incoming.file_unique_id,
        cloud_url=uploaded.url,
        format=uploaded.format,
        size_bytes=uploaded.size_bytes,
    )
    await session.commit()
    logger.info(
        "Document stored: chat_id=%s, slot=%s, bytes=%d",
        driver.chat_id, target, uploaded.size_bytes,
    )

    remaining = driver.next_missing_slot()
    if remaining is None:
        await complete_registration(session, driver)
    return IngestResult(slot=target, next_slot=remaining, completed=remaining is None)
