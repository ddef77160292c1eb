import time
from dataclasses import dataclass
from typing import Any, Optional

from .config import RuntimeConfig

DEFAULT_TIMEOUT_MS = 3000


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class InvocationContext:
    """Lambda context object passed to handler function"""

    aws_request_id: str
    deadline_ms: int
    invoked_function_arn: Optional[str] = None
    function_name: Optional[str] = None
    function_version: Optional[str] = None
    memory_limit_in_mb: Optional[str] = None
    log_group_name: Optional[str] = None
    log_stream_name: Optional[str] = None
    client_context: Any = None
    identity: Any = None
    trace_id: Optional[str] = None

    def __post_init__(self):
        if not self.aws_request_id:
            raise ValueError('aws_request_id must be a non-empty string')

    @classmethod
    def build(cls, config: RuntimeConfig, request_id: str, deadline_ms: Optional[int] = None,
              **fields: Any) -> 'InvocationContext':
        """Combine per-invocation fields with the static function metadata"""
        if deadline_ms is None:
            deadline_ms = now_ms() + DEFAULT_TIMEOUT_MS
        return cls(
            aws_request_id=request_id,
            deadline_ms=deadline_ms,
            function_name=config.function_name,
            function_version=config.function_version,
            memory_limit_in_mb=config.memory_limit_in_mb,
            log_group_name=config.log_group_name,
            log_stream_name=config.log_stream_name,
            **fields,
        )

    def get_remaining_time_in_millis(self) -> int:
        """Get remaining execution time in milliseconds"""
        return max(0, self.deadline_ms - now_ms())
