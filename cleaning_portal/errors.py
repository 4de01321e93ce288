"""Domain exceptions raised by the service layer.

Each carries the HTTP status it maps to; ``main.py`` registers a handler that
renders them as ``{"detail": ..., **extra}`` JSON bodies.
"""

from __future__ import annotations

from typing import Any


class PortalError(Exception):
    """Base class for errors surfaced to the acting user."""

    status_code = 400
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def extra(self) -> dict[str, Any]:
        return {}


class ValidationError(PortalError):
    """Bad user input. ``field`` names the offending form field, if any."""

    status_code = 422
    default_detail = "Validation failed"

    def __init__(self, detail: str | None = None, field: str | None = None) -> None:
        self.field = field
        super().__init__(detail)

    def extra(self) -> dict[str, Any]:
        return {"field": self.field} if self.field else {}


class InvalidTransition(PortalError):
    status_code = 409

    def __init__(self, current: str, target: str, detail: str | None = None) -> None:
        self.current = current
        self.target = target
        super().__init__(detail or f"Cannot move booking from {current} to {target}")

    def extra(self) -> dict[str, Any]:
        return {"current": self.current, "target": self.target}


class StoreError(PortalError):
    """The entity store rejected or failed a query or write."""

    status_code = 503
    default_detail = "Something went wrong saving your changes. Please try again."


class UploadError(PortalError):
    """A single file failed to upload. Non-fatal for the batch it belongs to."""

    status_code = 502
    default_detail = "Upload failed"

    def __init__(self, filename: str, detail: str | None = None) -> None:
        self.filename = filename
        super().__init__(detail or f"Failed to upload {filename}")


class TooManyFiles(PortalError):
    status_code = 413

    def __init__(self, count: int, limit: int) -> None:
        self.count = count
        self.limit = limit
        super().__init__(f"Maximum {limit} photos at a time ({count} given)")

    def extra(self) -> dict[str, Any]:
        return {"limit": self.limit}


class NotFound(PortalError):
    status_code = 404

    def __init__(self, resource: str = "Resource") -> None:
        super().__init__(f"{resource} not found")


class AuthorizationGap(PortalError):
    """The actor is not entitled to the action they attempted."""

    status_code = 403
    default_detail = "You don't have permission to perform this action"


class EmailNotConfigured(PortalError):
    status_code = 503
    default_detail = "Email delivery is not configured"
