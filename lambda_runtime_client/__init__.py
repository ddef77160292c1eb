"""Runtime API client for Lambda@Home and AWS Lambda custom runtimes."""

from .config import RuntimeConfig
from .context import InvocationContext
from .errors import (
    ConfigurationError,
    HandlerLoadError,
    InvocationParseError,
    ProtocolError,
    RuntimeApiError,
    RuntimeClientError,
    to_error_payload,
)
from .runtime import Invocation, RuntimeClient, start
from .transport import Delivery, post_json

__version__ = '0.1.0'

__all__ = [
    'ConfigurationError',
    'Delivery',
    'HandlerLoadError',
    'Invocation',
    'InvocationContext',
    'InvocationParseError',
    'ProtocolError',
    'RuntimeApiError',
    'RuntimeClient',
    'RuntimeClientError',
    'RuntimeConfig',
    'post_json',
    'start',
    'to_error_payload',
]
