import os
from dataclasses import dataclass
from typing import Mapping, Optional

API_VERSION = '2018-06-01'
DEFAULT_HANDLER = 'lambda_function.handler'


def _get(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    return value if value else None


@dataclass(frozen=True)
class RuntimeConfig:
    """Process-wide settings, read once at startup."""

    runtime_api: Optional[str] = None
    function_name: Optional[str] = None
    function_version: Optional[str] = None
    memory_limit_in_mb: Optional[str] = None
    log_group_name: Optional[str] = None
    log_stream_name: Optional[str] = None
    handler: str = DEFAULT_HANDLER
    task_root: Optional[str] = None
    instance_id: Optional[str] = None
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'RuntimeConfig':
        if environ is None:
            environ = os.environ
        return cls(
            runtime_api=_get(environ, 'AWS_LAMBDA_RUNTIME_API'),
            function_name=_get(environ, 'AWS_LAMBDA_FUNCTION_NAME'),
            function_version=_get(environ, 'AWS_LAMBDA_FUNCTION_VERSION'),
            memory_limit_in_mb=_get(environ, 'AWS_LAMBDA_FUNCTION_MEMORY_SIZE'),
            log_group_name=_get(environ, 'AWS_LAMBDA_LOG_GROUP_NAME'),
            log_stream_name=_get(environ, 'AWS_LAMBDA_LOG_STREAM_NAME'),
            handler=_get(environ, '_HANDLER') or _get(environ, 'HANDLER') or DEFAULT_HANDLER,
            task_root=_get(environ, 'LAMBDA_TASK_ROOT'),
            instance_id=_get(environ, 'LAMBDAH_INSTANCE_ID'),
            log_level=_get(environ, 'AWS_LAMBDA_LOG_LEVEL') or 'INFO',
        )

    @property
    def base_url(self) -> str:
        return f'http://{self.runtime_api}/{API_VERSION}/runtime'
