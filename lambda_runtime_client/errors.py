import traceback
from typing import Any, Dict, List


class RuntimeClientError(Exception):
    """Base class for runtime client failures"""


class RuntimeApiError(RuntimeClientError):
    """The Runtime API could not be reached or answered unexpectedly"""


class ProtocolError(RuntimeApiError):
    """The next-invocation response is missing data required to answer it"""


class InvocationParseError(RuntimeClientError):
    """Malformed invocation data for a request id we can still answer"""

    def __init__(self, request_id: str, message: str):
        super().__init__(message)
        self.request_id = request_id


class ConfigurationError(RuntimeClientError):
    """Required host configuration is missing"""


class HandlerLoadError(RuntimeClientError):
    """The configured handler could not be imported"""


def get_stack_trace(error: BaseException) -> List[str]:
    """Extract trimmed, non-empty traceback lines from an exception"""
    if error.__traceback__ is None:
        return []
    formatted = traceback.format_exception(type(error), error, error.__traceback__)
    lines = []
    for chunk in formatted:
        for line in chunk.splitlines():
            line = line.strip()
            if line:
                lines.append(line)
    return lines


def to_error_payload(err: Any) -> Dict[str, Any]:
    """Shape any failure value into the Runtime API error document"""
    if isinstance(err, BaseException):
        return {
            'errorType': type(err).__name__ or 'Error',
            'errorMessage': str(err),
            'stackTrace': get_stack_trace(err),
        }
    return {
        'errorType': 'Error',
        'errorMessage': str(err),
        'stackTrace': [],
    }
