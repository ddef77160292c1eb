import json
import urllib.error
import urllib.request
from dataclasses import dataclass
from email.message import Message
from http.client import HTTPException
from typing import Any, Dict, Optional

from .errors import RuntimeApiError

USER_AGENT = 'lambdah-runtime-client/0.1.0'


@dataclass(frozen=True)
class Delivery:
    """Outcome of a report POST; failures are data, not exceptions."""

    ok: bool
    status: Optional[int] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class Response:
    status: int
    headers: Message
    body: bytes


def encode_body(payload: Any) -> bytes:
    """Strings and bytes go out verbatim, everything else as JSON"""
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, str):
        return payload.encode('utf-8')
    return json.dumps(payload).encode('utf-8')


def _build_request(url: str, data: Optional[bytes] = None,
                   headers: Optional[Dict[str, str]] = None) -> urllib.request.Request:
    req = urllib.request.Request(url, data=data, method='POST' if data is not None else 'GET')
    req.add_header('User-Agent', USER_AGENT)
    for name, value in (headers or {}).items():
        req.add_header(name, value)
    return req


def post_json(url: str, payload: Any, headers: Optional[Dict[str, str]] = None) -> Delivery:
    """POST a payload as application/json and discard the response body.

    Serialization errors are raised to the caller. Transport failures and
    error statuses are returned as a failed Delivery and never retried.
    """
    data = encode_body(payload)
    req = _build_request(url, data=data, headers=headers)
    req.add_header('Content-Type', 'application/json')
    try:
        with urllib.request.urlopen(req) as response:
            response.read()
            return Delivery(ok=True, status=response.status)
    except urllib.error.HTTPError as e:
        return Delivery(ok=False, status=e.code, error=f'HTTP {e.code}: {e.reason}')
    except (urllib.error.URLError, HTTPException, OSError) as e:
        return Delivery(ok=False, error=str(e))


def get(url: str, headers: Optional[Dict[str, str]] = None) -> Response:
    """Blocking GET without a timeout, suitable for long polling"""
    req = _build_request(url, headers=headers)
    try:
        with urllib.request.urlopen(req) as response:
            return Response(status=response.status, headers=response.headers, body=response.read())
    except urllib.error.HTTPError as e:
        raise RuntimeApiError(f'GET {url} failed with HTTP {e.code}: {e.reason}') from e
    except (urllib.error.URLError, HTTPException, OSError) as e:
        raise RuntimeApiError(f'GET {url} failed: {e}') from e
