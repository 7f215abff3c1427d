"""Error taxonomy for the catalog admin API.

Three families:

- ``StoreError``: raised by catalog store accessors (GitHub, in-memory).
- ``MediaError``: raised by the media upload gateway.
- ``AdminAPIError``: caller-facing outcomes, each carrying the HTTP status
  and a machine-checkable ``kind``. The mutation logic translates the first
  two families into this one; the API renders it as JSON.
"""
from typing import Any, Dict, Optional


class StoreError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.detail = detail


class CatalogNotFound(StoreError):
    pass


class CatalogMalformed(StoreError):
    pass


class StoreAuthFailure(StoreError):
    pass


class VersionConflict(StoreError):
    pass


class StoreTransientError(StoreError):
    pass


class MediaError(Exception):
    kind = "MediaError"

    def __init__(self, message: str, status: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.detail = detail


class PayloadTooLarge(MediaError):
    kind = "PayloadTooLarge"


class UnsupportedFormat(MediaError):
    kind = "UnsupportedFormat"


class UpstreamAuthFailure(MediaError):
    kind = "UpstreamAuthFailure"


class UpstreamRejected(MediaError):
    kind = "UpstreamRejected"


class MediaTransientError(MediaError):
    kind = "TransientIO"


class AdminAPIError(Exception):
    status_code = 500
    kind = "Error"

    def __init__(self, message: str, kind: Optional[str] = None, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if kind:
            self.kind = kind
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message, "kind": self.kind}
        if self.error:
            body["error"] = self.error
        return body


class InvalidPayload(AdminAPIError):
    status_code = 400
    kind = "InvalidPayload"


class ValidationFailed(AdminAPIError):
    status_code = 400
    kind = "ValidationError"


class Unauthorized(AdminAPIError):
    status_code = 401
    kind = "Unauthorized"


class ProductNotFound(AdminAPIError):
    status_code = 404
    kind = "NotFoundId"


class DuplicateId(AdminAPIError):
    status_code = 409
    kind = "DuplicateId"


class Conflict(AdminAPIError):
    status_code = 409
    kind = "VersionConflict"


class UploadRejected(AdminAPIError):
    status_code = 400
    kind = "UploadRejected"


class ServerMisconfigured(AdminAPIError):
    status_code = 500
    kind = "ServerMisconfigured"


class StoreUnavailable(AdminAPIError):
    status_code = 500
    kind = "StoreUnavailable"


class UpstreamFailure(AdminAPIError):
    status_code = 500
    kind = "UpstreamFailure"
