"""Error classifiers for transport back-ends.

Converts HTTP responses and `requests` exceptions raised by the SMS
gateway, webhook endpoints and push relay into OperationResult objects, so
every channel classifies failures the same way.

Key Functions:
- classify_http_response(): requests.Response → OperationResult
- classify_request_exception(): requests exceptions → OperationResult

Usage:
    from infrastructure.operations.classifiers import (
        classify_http_response,
        classify_request_exception,
    )

    try:
        response = session.post(url, json=payload, timeout=10)
    except requests.RequestException as exc:
        return classify_request_exception(exc)
    return classify_http_response(response, service="SMS gateway")
"""

from typing import Any, Optional

import requests

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

DEFAULT_RETRY_AFTER_SECONDS = 60


def _parse_retry_after(response: requests.Response) -> int:
    header_value = response.headers.get("Retry-After") if response.headers else None
    if header_value:
        try:
            return int(header_value)
        except (ValueError, TypeError):
            pass
    return DEFAULT_RETRY_AFTER_SECONDS


def _response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def classify_http_response(
    response: requests.Response, service: str = "HTTP endpoint"
) -> OperationResult:
    """Classify an HTTP response into an OperationResult.

    Status Code Mapping:
    - 2xx: SUCCESS, data carries status_code and the decoded body
    - 429: TRANSIENT_ERROR with retry_after from the Retry-After header
    - 401, 403: UNAUTHORIZED
    - 404: NOT_FOUND
    - 5xx: TRANSIENT_ERROR
    - Other 4xx: PERMANENT_ERROR

    Every non-2xx result uses `HTTP_<status>` as its error code and carries
    the status code in `data`.

    Args:
        response: Response returned by requests
        service: Back-end name used in messages

    Returns:
        OperationResult with appropriate status, message and error_code
    """
    status_code: int = response.status_code
    data = {"status_code": status_code}
    error_code = f"HTTP_{status_code}"

    if 200 <= status_code < 300:
        data["body"] = _response_body(response)
        return OperationResult.success(
            data=data, message=f"{service} accepted request ({status_code})"
        )

    if status_code == 429:
        return OperationResult.transient_error(
            f"{service} rate limited",
            error_code=error_code,
            retry_after=_parse_retry_after(response),
            data=data,
        )

    if status_code in (401, 403):
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            f"{service} rejected credentials ({status_code})",
            error_code=error_code,
            data=data,
        )

    if status_code == 404:
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            f"{service} endpoint not found",
            error_code=error_code,
            data=data,
        )

    if 500 <= status_code < 600:
        return OperationResult.transient_error(
            f"{service} server error ({status_code})",
            error_code=error_code,
            data=data,
        )

    return OperationResult.permanent_error(
        f"{service} client error ({status_code})",
        error_code=error_code,
        data=data,
    )


def classify_request_exception(
    exc: Exception, service: Optional[str] = None
) -> OperationResult:
    """Classify an exception raised while talking to a back-end.

    Exception Mapping:
    - requests.Timeout: TRANSIENT_ERROR, TIMEOUT
    - requests.ConnectionError: TRANSIENT_ERROR, CONNECTION_ERROR
    - other requests.RequestException: TRANSIENT_ERROR, REQUEST_ERROR
    - anything else: TRANSIENT_ERROR, UNEXPECTED_ERROR

    Network problems are usually temporary, so everything is transient.

    Args:
        exc: Exception raised by requests or the transport
        service: Optional back-end name used in messages

    Returns:
        OperationResult with TRANSIENT_ERROR status
    """
    prefix = f"{service}: " if service else ""

    # Timeout must be checked first, ConnectTimeout is also a ConnectionError
    if isinstance(exc, requests.Timeout):
        return OperationResult.transient_error(
            f"{prefix}request timed out: {exc}", error_code="TIMEOUT"
        )

    if isinstance(exc, requests.ConnectionError):
        return OperationResult.transient_error(
            f"{prefix}connection error: {exc}", error_code="CONNECTION_ERROR"
        )

    if isinstance(exc, requests.RequestException):
        return OperationResult.transient_error(
            f"{prefix}request failed: {type(exc).__name__}: {exc}",
            error_code="REQUEST_ERROR",
        )

    return OperationResult.transient_error(
        f"{prefix}unexpected error: {type(exc).__name__}: {exc}",
        error_code="UNEXPECTED_ERROR",
    )
