"""Operation status enumeration."""

from enum import Enum


class OperationStatus(Enum):
    """Outcome of a transport operation.

    Attributes:
        SUCCESS: The back-end accepted the request
        TRANSIENT_ERROR: Retryable failure (network, timeout, 5xx, 429)
        PERMANENT_ERROR: Non-retryable failure (4xx, malformed request)
        UNAUTHORIZED: Credentials rejected by the back-end
        NOT_FOUND: Endpoint or resource does not exist
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
