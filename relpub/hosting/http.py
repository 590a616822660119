"""HTTP client abstraction for the release-hosting API.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import re
import ssl
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from relpub.core.result import Err, Ok, Result

__all__ = [
    "HttpClient",
    "RealHttpClient",
    "MockHttpClient",
    "HttpError",
    "RecordedUpload",
    "next_link",
]

_CHUNK_SIZE = 64 * 1024
_LINK = re.compile(r'<([^>]*)>\s*;\s*rel="([^"]*)"')


def next_link(header: str | None) -> str | None:
    """The ``rel="next"`` target of an RFC 8288 ``Link`` header, if any."""
    for target, rel in _LINK.findall(header or ""):
        if "next" in rel.split():
            return target
    return None


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network and decoding errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations.

    This abstraction allows injecting mock clients for testing,
    avoiding real network calls in unit tests.
    """

    def request_json(
        self,
        method: str,
        url: str,
        body: Mapping[str, object] | None = None,
    ) -> Result[object, HttpError]:
        """Send a request with an optional JSON body and decode the JSON reply."""
        ...

    def get_json_page(self, url: str) -> Result[tuple[object, str | None], HttpError]:
        """GET one page of a list endpoint; return it with the next page URL."""
        ...

    def upload(self, url: str, path: Path, content_type: str) -> Result[object, HttpError]:
        """POST the bytes of ``path`` and decode the JSON reply."""
        ...

    def download(
        self,
        url: str,
        dest: Path,
        *,
        accept: str = "application/octet-stream",
    ) -> Result[Path, HttpError]:
        """Stream ``url`` into ``dest``."""
        ...


class RealHttpClient:
    """Real HTTP client using urllib.

    Handles:
    - HTTPS with system certificates
    - JSON request and response bodies
    - Streaming uploads and downloads
    - Timeout handling

    Auth headers are attached as unredirected headers so they are not
    forwarded when an asset download redirects to a storage host.
    """

    def __init__(
        self,
        *,
        timeout: float = 60.0,
        user_agent: str = "relpub/0.1.0",
        auth_headers: Mapping[str, str] | None = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._auth_headers = dict(auth_headers or {})
        self._ssl_context = ssl.create_default_context()

    def _build(
        self,
        method: str,
        url: str,
        *,
        data: object = None,
        headers: Mapping[str, str] | None = None,
    ) -> urllib.request.Request:
        req = urllib.request.Request(url, data=data, method=method)  # type: ignore[arg-type]
        req.add_header("User-Agent", self.user_agent)
        for key, value in (headers or {}).items():
            req.add_header(key, value)
        for key, value in self._auth_headers.items():
            req.add_unredirected_header(key, value)
        return req

    def _send(self, req: urllib.request.Request) -> Result[tuple[bytes, str | None], HttpError]:
        """Return the response body and its ``Link`` header."""
        url = req.full_url
        try:
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                return Ok((response.read(), response.headers.get("Link")))
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=_error_detail(e)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

    def request_json(
        self,
        method: str,
        url: str,
        body: Mapping[str, object] | None = None,
    ) -> Result[object, HttpError]:
        data: bytes | None = None
        headers = {"Accept": "application/vnd.github+json"}
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"

        result = self._send(self._build(method, url, data=data, headers=headers))
        if isinstance(result, Err):
            return result
        return _decode_json(url, result.value[0])

    def get_json_page(self, url: str) -> Result[tuple[object, str | None], HttpError]:
        req = self._build("GET", url, headers={"Accept": "application/vnd.github+json"})
        result = self._send(req)
        if isinstance(result, Err):
            return result
        raw, link = result.value
        decoded = _decode_json(url, raw)
        if isinstance(decoded, Err):
            return decoded
        return Ok((decoded.value, next_link(link)))

    def upload(self, url: str, path: Path, content_type: str) -> Result[object, HttpError]:
        try:
            size = path.stat().st_size
            handle = path.open("rb")
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=f"cannot read {path}: {e}"))

        with handle:
            req = self._build(
                "POST",
                url,
                data=handle,
                headers={
                    "Accept": "application/vnd.github+json",
                    "Content-Type": content_type,
                    "Content-Length": str(size),
                },
            )
            result = self._send(req)
        if isinstance(result, Err):
            return result
        return _decode_json(url, result.value[0])

    def download(
        self,
        url: str,
        dest: Path,
        *,
        accept: str = "application/octet-stream",
    ) -> Result[Path, HttpError]:
        req = self._build("GET", url, headers={"Accept": accept})
        try:
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                dest.parent.mkdir(parents=True, exist_ok=True)
                with open(dest, "wb") as f:
                    while True:
                        chunk = response.read(_CHUNK_SIZE)
                        if not chunk:
                            break
                        f.write(chunk)
                return Ok(dest)
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=_error_detail(e)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Download timed out"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))


def _decode_json(url: str, raw: bytes) -> Result[object, HttpError]:
    if not raw.strip():
        return Ok(None)
    try:
        obj: object = json.loads(raw.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))
    return Ok(obj)


def _error_detail(e: urllib.error.HTTPError) -> str:
    # GitHub puts the useful part of a 4xx into a JSON "message" field.
    try:
        payload: object = json.loads(e.read().decode("utf-8"))
    except (OSError, ValueError):
        return str(e.reason)
    if isinstance(payload, dict):
        message = payload.get("message")  # pyright: ignore[reportUnknownMemberType]
        if isinstance(message, str) and message:
            return f"{e.reason}: {message}"
    return str(e.reason)


@dataclass(frozen=True, slots=True)
class RecordedUpload:
    url: str
    filename: str
    content_type: str
    data: bytes


def _no_uploads() -> list[RecordedUpload]:
    return []


@dataclass
class MockHttpClient:
    """Mock HTTP client for testing.

    Responses are keyed by ``(method, url)``; unknown requests get a 404.

    Usage:
        client = MockHttpClient()
        client.set_json("GET", "https://api.example.com/releases", [])
        result = client.request_json("GET", "https://api.example.com/releases")
        assert result == Ok([])
    """

    _json: dict[tuple[str, str], object] = field(default_factory=dict)
    _downloads: dict[str, bytes | HttpError] = field(default_factory=dict)
    _next: dict[str, str | None] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)
    bodies: list[Mapping[str, object] | None] = field(default_factory=list)
    uploads: list[RecordedUpload] = field(default_factory=_no_uploads)

    def set_json(self, method: str, url: str, response: object) -> None:
        """Set the decoded JSON (or an HttpError) returned for a request."""
        self._json[(method, url)] = response

    def set_download(self, url: str, response: bytes | HttpError) -> None:
        self._downloads[url] = response

    def set_page(self, url: str, response: object, next_url: str | None = None) -> None:
        """Set a GET page whose ``Link`` header points at ``next_url``."""
        self._json[("GET", url)] = response
        self._next[url] = next_url

    def request_json(
        self,
        method: str,
        url: str,
        body: Mapping[str, object] | None = None,
    ) -> Result[object, HttpError]:
        self.calls.append((method, url))
        self.bodies.append(body)
        key = (method, url)
        if key not in self._json:
            return Err(HttpError(url=url, status=404, message="Not Found (mock)"))
        response = self._json[key]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def get_json_page(self, url: str) -> Result[tuple[object, str | None], HttpError]:
        result = self.request_json("GET", url)
        if isinstance(result, Err):
            return result
        return Ok((result.value, self._next.get(url)))

    def upload(self, url: str, path: Path, content_type: str) -> Result[object, HttpError]:
        self.calls.append(("POST", url))
        self.uploads.append(
            RecordedUpload(
                url=url,
                filename=path.name,
                content_type=content_type,
                data=path.read_bytes(),
            )
        )
        response = self._json.get(("POST", url), {"name": path.name})
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def download(
        self,
        url: str,
        dest: Path,
        *,
        accept: str = "application/octet-stream",
    ) -> Result[Path, HttpError]:
        self.calls.append(("GET", url))
        if url not in self._downloads:
            return Err(HttpError(url=url, status=404, message="Not Found (mock)"))
        response = self._downloads[url]
        if isinstance(response, HttpError):
            return Err(response)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(response)
        return Ok(dest)
