"""Operation result types and status enums.

Standardized result types returned by transport back-ends, plus the
classifiers that turn HTTP responses and exceptions into results.
"""

from infrastructure.operations.classifiers import (
    classify_http_response,
    classify_request_exception,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_http_response",
    "classify_request_exception",
]
