from vayaride.models.driver import Driver, DriverDocument, DOCUMENT_SLOTS, DOCUMENT_LABELS
from vayaride.models.trip_request import TripRequest

__all__ = [
    "Driver", "DriverDocument", "DOCUMENT_SLOTS", "DOCUMENT_LABELS",
    "TripRequest",
]
