"""
Failure conditions raised by the locate/fetch/vote pipeline.

All of them are caught by the application session and turned into a
degraded state or a notice; none is meant to reach the user as a traceback.
"""

from typing import Optional


class LocaisError(Exception):
    """Base error. ``kind`` is a short machine-readable label."""

    kind = "error"

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message or self.kind)


class PositionUnavailable(LocaisError):
    """Permission denied, timed out, or the positioning source failed."""
    kind = "position_unavailable"


class UnsupportedPlatform(LocaisError):
    """No positioning capability exists at all."""
    kind = "unsupported_platform"


class FetchFailed(LocaisError):
    """Reading locations failed on the network or while decoding."""
    kind = "fetch_failed"


class Unauthenticated(LocaisError):
    """No bearer credential, or the server rejected it."""
    kind = "unauthenticated"


class RequestFailed(LocaisError):
    """A mutation came back with a non-success status."""
    kind = "request_failed"


class AlreadyFavorited(LocaisError):
    """The location is already in the user's favorites."""
    kind = "already_favorited"


class ViewNodeMissing(LocaisError):
    """The location has no rendered card (filtered out since last render)."""
    kind = "view_node_missing"
