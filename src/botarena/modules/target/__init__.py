"""Target service -- product API, request logging and detector gating."""

from .http_io import HttpRequest, HttpResponse
from .server import DEFAULT_THROTTLE_DELAY, TargetApp, is_asset_request
from .store import DetectionStore, SessionKeyedLog, SessionLogStore

__all__ = [
    "DEFAULT_THROTTLE_DELAY",
    "DetectionStore",
    "HttpRequest",
    "HttpResponse",
    "SessionKeyedLog",
    "SessionLogStore",
    "TargetApp",
    "is_asset_request",
]
