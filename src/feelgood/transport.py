"""HTTP plumbing shared by the REST clients."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable
from urllib import error as urlerror
from urllib import request as urlrequest

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """Raised when a request cannot be delivered or times out."""


@dataclass(slots=True)
class HTTPResponse:
    """Status code and raw body of a completed request."""

    status: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid UTF-8 JSON.

        """
        return json.loads(self.body.decode("utf-8"))

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


Sender = Callable[..., Awaitable[HTTPResponse]]


async def post(
    url: str,
    data: bytes,
    headers: Mapping[str, str],
    *,
    timeout: float,
) -> HTTPResponse:  # pragma: no cover - performs real HTTP requests
    """POST ``data`` to ``url`` and return the response whatever its status.

    Args:
        url: Target URL.
        data: Encoded request body.
        headers: Request headers.
        timeout: Request timeout in seconds.

    Returns:
        The :class:`HTTPResponse`, including non-2xx responses.

    Raises:
        TransportError: If the server cannot be reached or the call times out.

    """

    def _sync_request() -> HTTPResponse:
        """Perform the blocking HTTP request in a thread."""
        req = urlrequest.Request(url, data=data, headers=dict(headers), method="POST")
        try:
            with urlrequest.urlopen(req, timeout=timeout) as response:  # nosec B310 - HTTPS APIs
                return HTTPResponse(
                    status=response.status,
                    body=response.read(),
                    headers=dict(response.headers.items()),
                )
        except urlerror.HTTPError as exc:
            return HTTPResponse(status=exc.code, body=exc.read(), headers=dict(exc.headers.items()))
        except (urlerror.URLError, TimeoutError, OSError) as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _sync_request)


def encode_json(payload: Mapping[str, Any]) -> tuple[bytes, dict[str, str]]:
    """Serialise ``payload`` and return it with matching headers."""
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    return json.dumps(payload).encode("utf-8"), headers


def encode_multipart_formdata(
    fields: Mapping[str, Any],
    files: Mapping[str, tuple[str, bytes, str]],
) -> tuple[str, bytes]:
    """Encode payload and files into multipart/form-data.

    Returns:
        The boundary and the encoded body.

    """
    boundary = os.urandom(16).hex()
    body = bytearray()
    for name, (filename, content, content_type) in files.items():
        body.extend(f"--{boundary}\r\n".encode())
        body.extend(
            f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'.encode()
        )
        body.extend(f"Content-Type: {content_type}\r\n\r\n".encode())
        body.extend(content)
        body.extend(b"\r\n")
    for name, value in fields.items():
        body.extend(f"--{boundary}\r\n".encode())
        body.extend(f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode())
        if isinstance(value, bytes):
            body.extend(value)
        else:
            body.extend(str(value).encode("utf-8"))
        body.extend(b"\r\n")
    body.extend(f"--{boundary}--\r\n".encode())
    return boundary, bytes(body)


__all__ = [
    "HTTPResponse",
    "Sender",
    "TransportError",
    "encode_json",
    "encode_multipart_formdata",
    "post",
]
