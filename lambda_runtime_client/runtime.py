import asyncio
import inspect
import json
import os
import signal
import sys
import threading
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from . import logs, transport
from .config import RuntimeConfig
from .context import InvocationContext
from .errors import (
    ConfigurationError,
    InvocationParseError,
    ProtocolError,
    RuntimeApiError,
    to_error_payload,
)
from .transport import Delivery

Handler = Callable[[Any, InvocationContext], Any]

TRACE_ID_ENV = '_X_AMZN_TRACE_ID'

HEADER_REQUEST_ID = 'Lambda-Runtime-Aws-Request-Id'
HEADER_TRACE_ID = 'Lambda-Runtime-Trace-Id'
HEADER_FUNCTION_ARN = 'Lambda-Runtime-Invoked-Function-Arn'
HEADER_DEADLINE_MS = 'Lambda-Runtime-Deadline-Ms'
HEADER_CLIENT_CONTEXT = 'Lambda-Runtime-Client-Context'
HEADER_COGNITO_IDENTITY = 'Lambda-Runtime-Cognito-Identity'


def publish_trace_id(trace_id: str) -> None:
    """Expose the trace header to tracing libraries running in this process"""
    os.environ[TRACE_ID_ENV] = trace_id


@dataclass(frozen=True)
class Invocation:
    request_id: str
    event: Any
    context: InvocationContext


async def _resolve(awaitable: Awaitable) -> Any:
    return await awaitable


class RuntimeClient:
    """Polls the Runtime API and hands each invocation to a handler, one at a time.

    Report deliveries that fail are logged and otherwise ignored: the loop always
    goes back to polling, since the host decides what happens to an unanswered
    invocation.
    """

    def __init__(self, config: RuntimeConfig,
                 trace_publisher: Callable[[str], None] = publish_trace_id):
        if not config.runtime_api:
            raise ConfigurationError('AWS_LAMBDA_RUNTIME_API is not set. Not on Lambda?')
        self.config = config
        self.trace_publisher = trace_publisher
        self.is_shutting_down = False
        self.dispatching = False
        self.logger = logs.get_logger('runtime')

    def log(self, level: str, message: str, **kwargs):
        logs.log_event(self.logger, level, message, **kwargs)

    def _headers(self) -> Dict[str, str]:
        if self.config.instance_id:
            return {'X-LambdaH-Instance-Id': self.config.instance_id}
        return {}

    def _url(self, path: str) -> str:
        return f'{self.config.base_url}/{path}'

    def next_invocation(self) -> Invocation:
        """Block until the Runtime API hands out the next invocation.

        Raises ProtocolError when the request id header is missing, and
        InvocationParseError when anything else about a correlated invocation
        is malformed.
        """
        response = transport.get(self._url('invocation/next'), headers=self._headers())
        headers = response.headers

        request_id = headers.get(HEADER_REQUEST_ID)
        if not request_id:
            raise ProtocolError(f'Next invocation response has no {HEADER_REQUEST_ID} header')

        trace_id = headers.get(HEADER_TRACE_ID)
        if trace_id:
            self.trace_publisher(trace_id)

        try:
            deadline = headers.get(HEADER_DEADLINE_MS)
            client_context = headers.get(HEADER_CLIENT_CONTEXT)
            identity = headers.get(HEADER_COGNITO_IDENTITY)
            context = InvocationContext.build(
                self.config,
                request_id,
                deadline_ms=int(deadline) if deadline else None,
                invoked_function_arn=headers.get(HEADER_FUNCTION_ARN),
                client_context=json.loads(client_context) if client_context else None,
                identity=json.loads(identity) if identity else None,
                trace_id=trace_id,
            )
            event = json.loads(response.body) if response.body else {}
        except ValueError as e:
            raise InvocationParseError(request_id, f'Malformed invocation {request_id}: {e}') from e

        return Invocation(request_id=request_id, event=event, context=context)

    def post_response(self, request_id: str, result: Any) -> Delivery:
        """Post the response back to the runtime API"""
        return transport.post_json(self._url(f'invocation/{request_id}/response'), result,
                                   headers=self._headers())

    def post_error(self, request_id: str, error: Any) -> Delivery:
        """Post an error back to the runtime API"""
        return transport.post_json(self._url(f'invocation/{request_id}/error'),
                                   to_error_payload(error), headers=self._headers())

    def post_init_error(self, error: Any) -> Optional[Delivery]:
        """Best-effort init failure report; never raises"""
        return report_init_error(self.config, error)

    def invoke(self, handler: Handler, invocation: Invocation) -> Any:
        result = handler(invocation.event, invocation.context)
        if inspect.isawaitable(result):
            result = asyncio.run(_resolve(result))
        return result

    def process_next(self, handler: Handler) -> Delivery:
        """Run one poll, dispatch and report cycle.

        `dispatching` is True from the moment an invocation is received until
        its report has been sent.
        """
        try:
            invocation = self.next_invocation()
        except InvocationParseError as e:
            self.dispatching = True
            try:
                return self._report_parse_error(e)
            finally:
                self.dispatching = False

        self.dispatching = True
        try:
            return self._dispatch(handler, invocation)
        finally:
            self.dispatching = False

    def _report_parse_error(self, e: InvocationParseError) -> Delivery:
        self.log('error', 'Invocation could not be parsed',
                 requestId=e.request_id, error=to_error_payload(e))
        return self._checked(e.request_id, self.post_error(e.request_id, e))

    def _dispatch(self, handler: Handler, invocation: Invocation) -> Delivery:
        request_id = invocation.request_id
        self.log('info', 'Function execution started', requestId=request_id,
                 deadlineMs=invocation.context.deadline_ms)
        try:
            result = self.invoke(handler, invocation)
            delivery = self.post_response(request_id, result)
            self.log('info', 'Function execution completed successfully', requestId=request_id)
        except Exception as e:
            self.log('error', 'Function execution failed', requestId=request_id,
                     error=to_error_payload(e))
            delivery = self.post_error(request_id, e)
        return self._checked(request_id, delivery)

    def _checked(self, request_id: str, delivery: Delivery) -> Delivery:
        if not delivery.ok:
            self.log('warning', 'Report delivery failed', requestId=request_id,
                     status=delivery.status, error=delivery.error)
        return delivery

    def stop(self):
        self.is_shutting_down = True

    def handle_shutdown(self, signum, frame):
        """Handle shutdown signals.

        While idle (blocked in the long poll) the process exits right away.
        With an invocation in flight the stop is deferred until it is reported.
        """
        self.log('info', 'Container termination signal received', signal=signum,
                 dispatching=self.dispatching)
        self.stop()
        if not self.dispatching:
            raise SystemExit(0)

    def run(self, handler: Handler, should_stop: Optional[Callable[[], bool]] = None) -> None:
        """Serve invocations until stopped.

        Without a should_stop hook or a call to stop() this never returns;
        RuntimeApiError from the poll step propagates.
        """
        self.log('info', 'Runtime loop started', runtimeApi=self.config.runtime_api,
                 functionName=self.config.function_name)
        while not self.is_shutting_down:
            if should_stop is not None and should_stop():
                break
            self.process_next(handler)
        self.log('info', 'Runtime loop stopped')


def report_init_error(config: RuntimeConfig, error: Any) -> Optional[Delivery]:
    """POST an init error when the Runtime API address is known.

    Returns None when no report was possible. Delivery failures are logged only.
    """
    logger = logs.get_logger('runtime')
    payload = to_error_payload(error)
    logs.log_event(logger, 'error', 'Initialization failed', error=payload)
    if not config.runtime_api:
        return None
    try:
        delivery = transport.post_json(f'{config.base_url}/init/error', payload)
    except Exception as e:
        logs.log_event(logger, 'warning', 'Init error report failed', error=str(e))
        return None
    if not delivery.ok:
        logs.log_event(logger, 'warning', 'Init error report failed',
                       status=delivery.status, error=delivery.error)
    return delivery


def start(handler: Handler, config: Optional[RuntimeConfig] = None,
          trace_publisher: Callable[[str], None] = publish_trace_id) -> None:
    """Serve invocations with handler until a termination signal arrives.

    Exits the process with status 1 when AWS_LAMBDA_RUNTIME_API is missing
    or the Runtime API stops answering polls.
    """
    if config is None:
        config = RuntimeConfig.from_env()
    logs.configure(config.log_level)

    if not config.runtime_api:
        report_init_error(config, ConfigurationError('AWS_LAMBDA_RUNTIME_API is not set. Not on Lambda?'))
        print('Not running in Lambda (AWS_LAMBDA_RUNTIME_API missing).', file=sys.stderr)
        sys.exit(1)

    client = RuntimeClient(config, trace_publisher=trace_publisher)
    previous = {}
    # signal handlers can only be installed from the main thread
    if threading.current_thread() is threading.main_thread():
        for signum in (signal.SIGTERM, signal.SIGINT):
            previous[signum] = signal.signal(signum, client.handle_shutdown)
    try:
        client.run(handler)
    except RuntimeApiError as e:
        client.log('error', 'Runtime API unavailable', error=to_error_payload(e))
        sys.exit(1)
    finally:
        for signum, previous_handler in previous.items():
            signal.signal(signum, previous_handler)
