"""Tagged service errors.

Each error carries the HTTP status a caller should surface, so routers can
translate them without knowing which service raised them.
"""

from typing import Optional


class ServiceError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(ServiceError):
    status_code = 400
    code = "invalid_input"


class WebhookDecodeError(InvalidInputError):
    code = "invalid_webhook"


class ForbiddenError(ServiceError):
    status_code = 403
    code = "forbidden"


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"


class ConflictError(ServiceError):
    status_code = 409
    code = "conflict"


class ExternalServiceError(ServiceError):
    """A call to the channel API, blob store or completion backend failed.

    ``hop`` names the failing call (e.g. ``whatsapp.media_info``),
    ``upstream_status``/``body`` keep what the remote side returned and
    ``transient`` tells the retry policy whether another attempt can help.
    """

    status_code = 502
    code = "external_service_error"

    def __init__(
        self,
        hop: str,
        message: str,
        upstream_status: Optional[int] = None,
        body: Optional[str] = None,
        transient: bool = False,
    ):
        self.hop = hop
        self.upstream_status = upstream_status
        self.body = body
        self.transient = transient
        super().__init__(f"{hop}: {message}")


class DeadlineExceededError(ExternalServiceError):
    status_code = 504
    code = "deadline_exceeded"

    def __init__(self, hop: str):
        super().__init__(hop, "deadline exceeded before the call could be made")


def is_transient_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500
