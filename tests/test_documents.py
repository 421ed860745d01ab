"""Tests for document slot ingestion (Telegram download + media store mocked)."""

import asyncio
from itertools import combinations
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from sqlalchemy import select, text

from vayaride.models.driver import DOCUMENT_SLOTS, Driver, DriverDocument
from vayaride.services.documents import (
    IncomingFile,
    classify,
    download_file,
    ingest_document,
    slot_from_caption,
)
from vayaride.services.exceptions import ExternalIOError, ValidationError
from vayaride.services.media_store import UploadedMedia
from vayaride.services.onboarding import get_driver

PHOTO = IncomingFile("file-1", "uniq-1", "image/jpeg", is_photo=True)
PDF = IncomingFile("file-2", "uniq-2", "application/pdf")


def _media_store(url="https://media.test/doc"):
    store = MagicMock()
    store.upload = AsyncMock(side_effect=lambda data, **kw: UploadedMedia(
        url=f"{url}/{kw['name']}.{kw['fmt']}", format=kw["fmt"], size_bytes=len(data),
    ))
    return store


def _telegram(data=b"\x89PNG-bytes"):
    """Patch the Telegram side of the pipeline."""
    return (
        patch("vayaride.services.documents.resolve_file_url", AsyncMock(return_value="https://tg.test/f")),
        patch("vayaride.services.documents.download_file", AsyncMock(return_value=data)),
    )


def _fill(driver: Driver, slots):
    for slot in slots:
        driver.add_or_update_document(
            slot, file_id=f"f-{slot}", file_unique_id=None,
            cloud_url=f"https://media.test/{slot}", format="jpg", size_bytes=1,
        )


# ── Classification & caption targeting ─────────────────────

def test_classify_photo():
    assert classify(PHOTO) == ("image", "jpg", "image/jpeg")


@pytest.mark.parametrize("mime,fmt", [("image/png", "png"), ("image/jpeg", "jpg"), ("IMAGE/PNG", "png")])
def test_classify_image_document(mime, fmt):
    resource_type, got_fmt, _ = classify(IncomingFile("f", None, mime))
    assert (resource_type, got_fmt) == ("image", fmt)


def test_classify_pdf_is_raw():
    assert classify(PDF)[:2] == ("raw", "pdf")


@pytest.mark.parametrize("mime", [None, "application/zip", "video/mp4", "text/plain"])
def test_classify_rejects_other_types(mime):
    with pytest.raises(ValidationError, match="Unsupported file type"):
        classify(IncomingFile("f", None, mime))


@pytest.mark.parametrize("caption,slot", [
    ("1", "profilePhoto"),
    ("10", "licenseDisc"),
    ("driverslicense", "driversLicense"),
    (" nationalId ", "nationalId"),
    ("11", None),
    ("0", None),
    ("my licence", None),
    (None, None),
])
def test_slot_from_caption(caption, slot):
    assert slot_from_caption(caption) == slot


def test_incoming_file_prefers_largest_photo():
    small, large = MagicMock(file_id="s", file_unique_id="us"), MagicMock(file_id="l", file_unique_id="ul")
    message = MagicMock(photo=[small, large], document=None)
    incoming = IncomingFile.from_message(message)
    assert incoming.file_id == "l"
    assert incoming.is_photo is True


# ── Download ──────────────────────────────────────────────

@pytest.mark.asyncio
async def test_download_timeout_is_external_io_error():
    client = AsyncMock()
    client.get.side_effect = httpx.ReadTimeout("slow")
    client.__aenter__.return_value = client
    with patch("vayaride.services.documents.httpx.AsyncClient", return_value=client):
        with pytest.raises(ExternalIOError, match="timed-out"):
            await download_file("https://tg.test/f", 5.0)


# ── Full pipeline ─────────────────────────────────────────

@pytest.mark.asyncio
async def test_first_file_fills_first_slot(session, make_driver):
    driver = await make_driver(step="docs")
    store = _media_store()
    p1, p2 = _telegram(b"12345")
    with p1, p2:
        result = await ingest_document(session, MagicMock(), driver, PHOTO, store)

    assert result.slot == "profilePhoto"
    assert result.next_slot == "vehiclePhoto"
    assert result.completed is False

    doc = driver.documents["profilePhoto"]
    assert doc.cloud_url == "https://media.test/doc/profilePhoto.jpg"
    assert doc.format == "jpg"
    assert doc.size_bytes == 5
    assert doc.file_id == "file-1"
    assert doc.verified is False

    kwargs = store.upload.await_args.kwargs
    assert kwargs["folder"] == f"vayaride/{driver.chat_id}"
    assert kwargs["resource_type"] == "image"


@pytest.mark.asyncio
async def test_pdf_goes_to_raw_storage(session, make_driver):
    driver = await make_driver(step="docs")
    store = _media_store()
    p1, p2 = _telegram()
    with p1, p2:
        await ingest_document(session, MagicMock(), driver, PDF, store)
    assert store.upload.await_args.kwargs["resource_type"] == "raw"
    assert driver.documents["profilePhoto"].format == "pdf"


@pytest.mark.asyncio
async def test_unsupported_file_stores_nothing(session, make_driver):
    driver = await make_driver(step="docs")
    store = _media_store()
    p1, p2 = _telegram()
    with p1, p2 as download:
        with pytest.raises(ValidationError):
            await ingest_document(session, MagicMock(), driver, IncomingFile("f", None, "video/mp4"), store)
    download.assert_not_awaited()
    store.upload.assert_not_awaited()
    assert driver.documents == {}


@pytest.mark.asyncio
async def test_download_failure_leaves_record_unchanged(session, make_driver):
    driver = await make_driver(step="docs")
    store = _media_store()
    with patch("vayaride.services.documents.resolve_file_url", AsyncMock(return_value="u")), \
         patch("vayaride.services.documents.download_file",
               AsyncMock(side_effect=ExternalIOError("❌ Telegram download timed-out."))):
        with pytest.raises(ExternalIOError):
            await ingest_document(session, MagicMock(), driver, PHOTO, store)

    store.upload.assert_not_awaited()
    rows = (await session.execute(select(DriverDocument))).scalars().all()
    assert rows == []


@pytest.mark.asyncio
async def test_upload_failure_leaves_record_unchanged(session, make_driver):
    driver = await make_driver(step="docs")
    store = MagicMock()
    store.upload = AsyncMock(side_effect=ExternalIOError("❌ Upload timed out. Please send the file again."))
    p1, p2 = _telegram()
    with p1, p2:
        with pytest.raises(ExternalIOError, match="Upload timed out"):
            await ingest_document(session, MagicMock(), driver, PHOTO, store)
    assert driver.documents == {}
    assert driver.registration_step == "docs"


@pytest.mark.asyncio
async def test_captioned_slot_overwrites_and_resets_verified(session, make_driver):
    driver = await make_driver(step="docs")
    _fill(driver, ["profilePhoto"])
    driver.documents["profilePhoto"].verified = True
    await session.commit()

    store = _media_store(url="https://media.test/v2")
    p1, p2 = _telegram()
    with p1, p2:
        result = await ingest_document(session, MagicMock(), driver, PHOTO, store, slot="profilePhoto")

    assert result.slot == "profilePhoto"
    rows = (await session.execute(
        select(DriverDocument).where(DriverDocument.driver_id == driver.id)
    )).scalars().all()
    assert len(rows) == 1
    assert rows[0].cloud_url == "https://media.test/v2/profilePhoto.jpg"
    assert rows[0].verified is False


@pytest.mark.asyncio
async def test_last_slot_completes_registration(session, make_driver):
    driver = await make_driver(step="docs")
    _fill(driver, DOCUMENT_SLOTS[:-1])
    await session.commit()

    p1, p2 = _telegram()
    with p1, p2:
        result = await ingest_document(session, MagicMock(), driver, PDF, _media_store())

    assert result.slot == "licenseDisc"
    assert result.completed is True
    assert result.next_slot is None
    assert driver.registration_step == "completed"
    assert driver.status == "pending"
    assert driver.documents_complete is True


@pytest.mark.asyncio
async def test_nothing_to_fill_returns_none(session, make_driver):
    driver = await make_driver(step="completed")
    _fill(driver, DOCUMENT_SLOTS)
    await session.commit()

    store = _media_store()
    result = await ingest_document(session, MagicMock(), driver, PHOTO, store)
    assert result is None
    store.upload.assert_not_awaited()


# ── Completeness predicate ────────────────────────────────

def test_documents_complete_only_when_every_slot_has_url():
    for size in range(len(DOCUMENT_SLOTS) + 1):
        for subset in combinations(DOCUMENT_SLOTS, size):
            driver = Driver(chat_id="1", documents={})
            _fill(driver, subset)
            assert driver.documents_complete is (size == len(DOCUMENT_SLOTS))


def test_slot_without_url_is_not_complete():
    driver = Driver(chat_id="1", documents={})
    _fill(driver, DOCUMENT_SLOTS)
    driver.documents["dekraCertificate"].cloud_url = None
    assert driver.documents_complete is False
    assert driver.next_missing_slot() == "dekraCertificate"


def test_filled_count_ignores_slots_without_url():
    driver = Driver(chat_id="1", documents={})
    _fill(driver, ["profilePhoto", "vehiclePhoto"])
    driver.documents["vehiclePhoto"].cloud_url = None
    assert driver.has_document("profilePhoto") is True
    assert driver.has_document("vehiclePhoto") is False
    assert driver.has_document("nationalId") is False
    assert driver.documents_filled == 1


def test_unknown_slot_rejected():
    driver = Driver(chat_id="1", documents={})
    with pytest.raises(KeyError):
        _fill(driver, ["passport"])


# ── Connection use ────────────────────────────────────────

@pytest.mark.asyncio
async def test_upload_does_not_hold_a_db_connection(single_connection_factory):
    async with single_connection_factory() as s:
        s.add(Driver(chat_id="100", registration_step="docs", status="pending", documents={}))
        await s.commit()

    async def slow_upload(data, **kw):
        await asyncio.sleep(1.5)
        return UploadedMedia(url=f"https://media.test/{kw['name']}", format=kw["fmt"], size_bytes=len(data))

    store = MagicMock()
    store.upload = AsyncMock(side_effect=slow_upload)

    async def other_request():
        await asyncio.sleep(0.2)
        async with single_connection_factory() as other:
            return (await other.execute(text("select 1"))).scalar()

    async with single_connection_factory() as s:
        driver = await get_driver(s, 100)
        p1, p2 = _telegram()
        with p1, p2:
            result, value = await asyncio.gather(
                ingest_document(s, MagicMock(), driver, PHOTO, store),
                other_request(),
            )

    assert value == 1
    assert result.slot == "profilePhoto"
    assert driver.documents["profilePhoto"].cloud_url == "https://media.test/profilePhoto"
