"""Release-hosting adapters.

The pipeline talks to the hosting platform only through
:class:`ReleaseHost`. :class:`GitHubReleaseHost` maps it onto the GitHub
REST releases API; :class:`MemoryReleaseHost` keeps everything in memory
and records the mutating calls, for tests.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import parse_qs, urlsplit

from relpub.core.result import Err, Ok, Result
from relpub.core.structured import as_obj_list, as_str_dict, get_list, get_str
from relpub.hosting.http import HttpClient, HttpError
from relpub.release.errors import ReleaseError
from relpub.release.model import Release, ReleaseAsset

__all__ = [
    "ReleaseHost",
    "GitHubReleaseHost",
    "MemoryReleaseHost",
]

_PER_PAGE = 100


@runtime_checkable
class ReleaseHost(Protocol):
    """Remote release API consumed by the pipeline."""

    def list_releases(self) -> Result[list[Release], ReleaseError]: ...

    def create_release(self, *, version: str, body: str) -> Result[Release, ReleaseError]:
        """Create a draft release whose tag and name are both ``version``."""
        ...

    def patch_release(
        self, release: Release, *, version: str, body: str
    ) -> Result[Release, ReleaseError]: ...

    def list_assets(self, release: Release) -> Result[list[ReleaseAsset], ReleaseError]: ...

    def upload_asset(
        self, url: str, path: Path, *, content_type: str
    ) -> Result[ReleaseAsset, ReleaseError]:
        """Upload ``path`` to a fully built upload URL (query included)."""
        ...

    def download_asset(self, asset: ReleaseAsset, dest: Path) -> Result[Path, ReleaseError]: ...


def _remote_error(message: str, error: HttpError) -> Err[ReleaseError]:
    return Err(ReleaseError(kind="remote_api", message=message, hint=str(error)))


def _parse_asset(obj: object) -> ReleaseAsset | None:
    d = as_str_dict(obj)
    if d is None:
        return None
    name = get_str(d, "name")
    # The API url (not browser_download_url) also works for draft releases.
    url = get_str(d, "url")
    if name is None or url is None:
        return None
    return ReleaseAsset(name=name, download_url=url)


def _parse_release(obj: object) -> Release | None:
    d = as_str_dict(obj)
    if d is None:
        return None
    name = get_str(d, "name")
    url = get_str(d, "url")
    upload_url = get_str(d, "upload_url")
    if name is None or url is None or upload_url is None:
        return None
    draft = d.get("draft")
    assets: list[ReleaseAsset] = []
    for item in get_list(d, "assets") or []:
        asset = _parse_asset(item)
        if asset is not None:
            assets.append(asset)
    return Release(
        name=name,
        url=url,
        upload_url=upload_url,
        draft=draft is True,
        assets=tuple(assets),
    )


class GitHubReleaseHost:
    """ReleaseHost backed by the GitHub REST API."""

    def __init__(
        self,
        http: HttpClient,
        *,
        repo: str,
        api_url: str = "https://api.github.com",
    ) -> None:
        self._http = http
        self._repo = repo
        self._api_url = api_url.rstrip("/")

    @property
    def releases_url(self) -> str:
        return f"{self._api_url}/repos/{self._repo}/releases"

    def _get_all(self, url: str, *, what: str) -> Result[list[object], ReleaseError]:
        """Collect every page of a list endpoint, following ``rel="next"`` links."""
        items: list[object] = []
        seen: set[str] = set()
        next_url: str | None = url
        while next_url is not None:
            if next_url in seen:
                return Err(
                    ReleaseError(
                        kind="remote_api",
                        message=f"pagination loop while listing {what}",
                        hint=next_url,
                    )
                )
            seen.add(next_url)

            result = self._http.get_json_page(next_url)
            if isinstance(result, Err):
                return _remote_error(f"failed to list {what}", result.error)
            page, following = result.value
            raw = as_obj_list(page)
            if raw is None:
                return Err(
                    ReleaseError(
                        kind="remote_api",
                        message=f"unexpected payload listing {what}",
                        hint=next_url,
                    )
                )
            items.extend(raw)
            next_url = following
        return Ok(items)

    def list_releases(self) -> Result[list[Release], ReleaseError]:
        url = f"{self.releases_url}?per_page={_PER_PAGE}"
        result = self._get_all(url, what=f"releases of {self._repo}")
        if isinstance(result, Err):
            return result

        # Entries without a name (e.g. tag-only releases) cannot match a version.
        out: list[Release] = []
        for item in result.value:
            release = _parse_release(item)
            if release is not None:
                out.append(release)
        return Ok(out)

    def _send_release(
        self, method: str, url: str, *, version: str, body: str
    ) -> Result[Release, ReleaseError]:
        payload: dict[str, object] = {
            "tag_name": version,
            "name": version,
            "draft": True,
            "body": body,
        }
        result = self._http.request_json(method, url, payload)
        if isinstance(result, Err):
            verb = "create" if method == "POST" else "update"
            return _remote_error(f"failed to {verb} release {version}", result.error)

        release = _parse_release(result.value)
        if release is None:
            return Err(
                ReleaseError(
                    kind="remote_api",
                    message=f"unexpected release payload for {version}",
                    hint=url,
                )
            )
        return Ok(release)

    def create_release(self, *, version: str, body: str) -> Result[Release, ReleaseError]:
        return self._send_release("POST", self.releases_url, version=version, body=body)

    def patch_release(
        self, release: Release, *, version: str, body: str
    ) -> Result[Release, ReleaseError]:
        return self._send_release("PATCH", release.url, version=version, body=body)

    def list_assets(self, release: Release) -> Result[list[ReleaseAsset], ReleaseError]:
        url = f"{release.url}/assets?per_page={_PER_PAGE}"
        result = self._get_all(url, what=f"assets of {release.name}")
        if isinstance(result, Err):
            return result

        out: list[ReleaseAsset] = []
        for item in result.value:
            asset = _parse_asset(item)
            if asset is None:
                return Err(
                    ReleaseError(
                        kind="remote_api",
                        message=f"malformed asset entry in {release.name}",
                        hint=url,
                    )
                )
            out.append(asset)
        return Ok(out)

    def upload_asset(
        self, url: str, path: Path, *, content_type: str
    ) -> Result[ReleaseAsset, ReleaseError]:
        result = self._http.upload(url, path, content_type)
        if isinstance(result, Err):
            return _remote_error(f"failed to upload {path.name}", result.error)

        asset = _parse_asset(result.value)
        if asset is None:
            return Err(
                ReleaseError(
                    kind="remote_api",
                    message=f"unexpected upload response for {path.name}",
                    hint=url,
                )
            )
        return Ok(asset)

    def download_asset(self, asset: ReleaseAsset, dest: Path) -> Result[Path, ReleaseError]:
        result = self._http.download(asset.download_url, dest)
        if isinstance(result, Err):
            return _remote_error(f"failed to download {asset.name}", result.error)
        return Ok(result.value)


@dataclass
class _StoredRelease:
    id: int
    name: str
    body: str
    draft: bool
    assets: dict[str, bytes] = field(default_factory=dict)

    @property
    def url(self) -> str:
        return f"{MemoryReleaseHost.API}/releases/{self.id}"

    def snapshot(self) -> Release:
        return Release(
            name=self.name,
            url=self.url,
            upload_url=f"{MemoryReleaseHost.UPLOADS}/releases/{self.id}/assets{{?name,label}}",
            draft=self.draft,
            assets=tuple(
                ReleaseAsset(name=n, download_url=f"{self.url}/assets/{n}")
                for n in sorted(self.assets)
            ),
        )


@dataclass
class MemoryReleaseHost:
    """In-memory ReleaseHost that records mutating calls.

    Usage:
        host = MemoryReleaseHost()
        host.create_release(version="2.5.0", body="notes")
        assert host.created == ["2.5.0"]
    """

    API = "https://api.memory.invalid"
    UPLOADS = "https://uploads.memory.invalid"

    releases: list[_StoredRelease] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    patched: list[str] = field(default_factory=list)
    uploaded: list[str] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    content_types: dict[str, str] = field(default_factory=dict)
    fail_uploads: set[str] = field(default_factory=set)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def _find(self, url: str) -> _StoredRelease | None:
        for stored in self.releases:
            if url == stored.url:
                return stored
        return None

    def add_release(self, version: str, *, body: str = "", draft: bool = True) -> Release:
        """Seed an existing release (bypasses the ``created`` record)."""
        stored = _StoredRelease(id=len(self.releases) + 1, name=version, body=body, draft=draft)
        self.releases.append(stored)
        return stored.snapshot()

    def put_asset(self, version: str, name: str, data: bytes) -> None:
        """Seed or overwrite an asset's remote bytes."""
        for stored in self.releases:
            if stored.name == version:
                stored.assets[name] = data
                return
        raise KeyError(version)

    def body_of(self, version: str) -> str | None:
        for stored in self.releases:
            if stored.name == version:
                return stored.body
        return None

    def list_releases(self) -> Result[list[Release], ReleaseError]:
        with self._lock:
            return Ok([r.snapshot() for r in self.releases])

    def create_release(self, *, version: str, body: str) -> Result[Release, ReleaseError]:
        with self._lock:
            self.created.append(version)
        return Ok(self.add_release(version, body=body))

    def patch_release(
        self, release: Release, *, version: str, body: str
    ) -> Result[Release, ReleaseError]:
        with self._lock:
            stored = self._find(release.url)
            if stored is None:
                return Err(ReleaseError(kind="remote_api", message=f"HTTP 404: {release.url}"))
            stored.body = body
            self.patched.append(version)
            return Ok(stored.snapshot())

    def list_assets(self, release: Release) -> Result[list[ReleaseAsset], ReleaseError]:
        with self._lock:
            stored = self._find(release.url)
            if stored is None:
                return Err(ReleaseError(kind="remote_api", message=f"HTTP 404: {release.url}"))
            return Ok(list(stored.snapshot().assets))

    def upload_asset(
        self, url: str, path: Path, *, content_type: str
    ) -> Result[ReleaseAsset, ReleaseError]:
        parts = urlsplit(url)
        query = parse_qs(parts.query)
        name = query.get("name", [""])[0]
        label = query.get("label", [""])[0]
        release_id = parts.path.split("/")[2]

        if name in self.fail_uploads:
            return Err(ReleaseError(kind="remote_api", message=f"failed to upload {name}"))

        data = path.read_bytes()
        with self._lock:
            for stored in self.releases:
                if str(stored.id) == release_id:
                    if name in stored.assets:
                        return Err(
                            ReleaseError(
                                kind="remote_api",
                                message=f"failed to upload {name}",
                                hint="HTTP 422: already_exists",
                            )
                        )
                    stored.assets[name] = data
                    self.uploaded.append(name)
                    self.labels[name] = label
                    self.content_types[name] = content_type
                    return Ok(ReleaseAsset(name=name, download_url=f"{stored.url}/assets/{name}"))
        return Err(ReleaseError(kind="remote_api", message=f"HTTP 404: {url}"))

    def download_asset(self, asset: ReleaseAsset, dest: Path) -> Result[Path, ReleaseError]:
        with self._lock:
            for stored in self.releases:
                if asset.download_url.startswith(stored.url + "/assets/"):
                    data = stored.assets.get(asset.name)
                    if data is None:
                        break
                    dest.parent.mkdir(parents=True, exist_ok=True)
                    dest.write_bytes(data)
                    return Ok(dest)
        return Err(ReleaseError(kind="remote_api", message=f"failed to download {asset.name}"))
