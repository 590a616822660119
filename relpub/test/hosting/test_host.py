"""Tests for relpub.hosting.host module."""

from __future__ import annotations

from pathlib import Path

from relpub.core.result import Err, Ok
from relpub.hosting.host import GitHubReleaseHost, MemoryReleaseHost, ReleaseHost
from relpub.hosting.http import HttpError, MockHttpClient
from relpub.release.model import Release, ReleaseAsset

API = "https://api.example.com"
RELEASES = f"{API}/repos/git-lfs/git-lfs/releases"
RELEASE_URL = f"{RELEASES}/7"
UPLOADS = "https://uploads.example.com/repos/git-lfs/git-lfs/releases/7"


def _release_json(name: str = "v3.4.0", assets: list[object] | None = None) -> dict[str, object]:
    return {
        "name": name,
        "url": RELEASE_URL,
        "upload_url": f"{UPLOADS}/assets{{?name,label}}",
        "draft": True,
        "assets": assets or [],
    }


def _host(client: MockHttpClient) -> GitHubReleaseHost:
    return GitHubReleaseHost(client, repo="git-lfs/git-lfs", api_url=API + "/")


class TestGitHubReleaseHost:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(_host(MockHttpClient()), ReleaseHost)

    def test_list_releases(self) -> None:
        client = MockHttpClient()
        client.set_json(
            "GET",
            f"{RELEASES}?per_page=100",
            [
                _release_json(assets=[{"name": "a.zip", "url": f"{RELEASE_URL}/assets/1"}]),
                {"name": None, "url": "x", "upload_url": "y"},
            ],
        )

        result = _host(client).list_releases()

        assert isinstance(result, Ok)
        assert len(result.value) == 1
        release = result.value[0]
        assert release.name == "v3.4.0"
        assert release.draft is True
        assert release.asset_names == frozenset({"a.zip"})

    def test_list_releases_http_error(self) -> None:
        client = MockHttpClient()
        client.set_json("GET", f"{RELEASES}?per_page=100", HttpError("u", 401, "Bad credentials"))

        result = _host(client).list_releases()

        assert isinstance(result, Err)
        assert result.error.kind == "remote_api"
        assert "401" in (result.error.hint or "")

    def test_list_releases_unexpected_payload(self) -> None:
        client = MockHttpClient()
        client.set_json("GET", f"{RELEASES}?per_page=100", {"message": "nope"})
        result = _host(client).list_releases()
        assert isinstance(result, Err)

    def test_list_releases_follows_next_page(self) -> None:
        """A release past the first page is still found, so none is duplicated."""
        client = MockHttpClient()
        page2 = f"{RELEASES}?per_page=100&page=2"
        client.set_page(f"{RELEASES}?per_page=100", [_release_json("v3.4.0")], next_url=page2)
        client.set_page(page2, [_release_json("v2.5.1")])

        result = _host(client).list_releases()

        assert isinstance(result, Ok)
        assert [r.name for r in result.value] == ["v3.4.0", "v2.5.1"]
        assert client.calls == [("GET", f"{RELEASES}?per_page=100"), ("GET", page2)]

    def test_list_releases_page_failure(self) -> None:
        client = MockHttpClient()
        page2 = f"{RELEASES}?per_page=100&page=2"
        client.set_page(f"{RELEASES}?per_page=100", [_release_json()], next_url=page2)

        result = _host(client).list_releases()

        assert isinstance(result, Err)
        assert result.error.kind == "remote_api"

    def test_list_releases_pagination_loop(self) -> None:
        client = MockHttpClient()
        first = f"{RELEASES}?per_page=100"
        client.set_page(first, [], next_url=first)

        result = _host(client).list_releases()

        assert isinstance(result, Err)
        assert "pagination loop" in result.error.message

    def test_create_release_payload(self) -> None:
        client = MockHttpClient()
        client.set_json("POST", RELEASES, _release_json())

        result = _host(client).create_release(version="v3.4.0", body="notes")

        assert isinstance(result, Ok)
        assert client.bodies[-1] == {
            "tag_name": "v3.4.0",
            "name": "v3.4.0",
            "draft": True,
            "body": "notes",
        }

    def test_patch_release_uses_release_url(self) -> None:
        client = MockHttpClient()
        client.set_json("PATCH", RELEASE_URL, _release_json())
        release = Release(name="v3.4.0", url=RELEASE_URL, upload_url="u", draft=True)

        result = _host(client).patch_release(release, version="v3.4.0", body="new")

        assert isinstance(result, Ok)
        assert client.calls == [("PATCH", RELEASE_URL)]

    def test_list_assets(self) -> None:
        client = MockHttpClient()
        client.set_json(
            "GET",
            f"{RELEASE_URL}/assets?per_page=100",
            [{"name": "sha256sums", "url": f"{RELEASE_URL}/assets/2"}],
        )
        release = Release(name="v3.4.0", url=RELEASE_URL, upload_url="u", draft=True)

        result = _host(client).list_assets(release)

        assert result == Ok([ReleaseAsset("sha256sums", f"{RELEASE_URL}/assets/2")])

    def test_list_assets_spans_pages(self) -> None:
        client = MockHttpClient()
        page2 = f"{RELEASE_URL}/assets?per_page=100&page=2"
        client.set_page(
            f"{RELEASE_URL}/assets?per_page=100",
            [{"name": "a.zip", "url": f"{RELEASE_URL}/assets/1"}],
            next_url=page2,
        )
        client.set_page(page2, [{"name": "sha256sums.asc", "url": f"{RELEASE_URL}/assets/2"}])
        release = Release(name="v3.4.0", url=RELEASE_URL, upload_url="u", draft=True)

        result = _host(client).list_assets(release)

        assert isinstance(result, Ok)
        assert [a.name for a in result.value] == ["a.zip", "sha256sums.asc"]

    def test_list_assets_malformed_entry(self) -> None:
        client = MockHttpClient()
        client.set_json("GET", f"{RELEASE_URL}/assets?per_page=100", [{"name": "x"}])
        release = Release(name="v3.4.0", url=RELEASE_URL, upload_url="u", draft=True)
        assert isinstance(_host(client).list_assets(release), Err)

    def test_upload_and_download(self, tmp_path: Path) -> None:
        client = MockHttpClient()
        path = tmp_path / "hashes"
        path.write_bytes(b"SHA256 (a) = 00\n")
        url = "https://uploads.example.com/r/7/assets?name=hashes&label=Unsigned%20Hashes"
        client.set_json("POST", url, {"name": "hashes", "url": f"{RELEASE_URL}/assets/3"})
        client.set_download(f"{RELEASE_URL}/assets/3", b"remote")
        host = _host(client)

        uploaded = host.upload_asset(url, path, content_type="text/plain")
        assert isinstance(uploaded, Ok)
        assert client.uploads[0].content_type == "text/plain"

        downloaded = host.download_asset(uploaded.value, tmp_path / "dl" / "hashes")
        assert isinstance(downloaded, Ok)
        assert downloaded.value.read_bytes() == b"remote"

    def test_download_failure(self, tmp_path: Path) -> None:
        host = _host(MockHttpClient())
        result = host.download_asset(ReleaseAsset("a", f"{RELEASE_URL}/assets/9"), tmp_path / "a")
        assert isinstance(result, Err)
        assert result.error.message == "failed to download a"


class TestMemoryReleaseHost:
    def test_create_and_list(self) -> None:
        host = MemoryReleaseHost()
        created = host.create_release(version="v3.4.0", body="notes")

        assert isinstance(created, Ok)
        assert host.created == ["v3.4.0"]
        assert host.list_releases() == Ok([created.value])
        assert host.body_of("v3.4.0") == "notes"

    def test_upload_parses_query(self, tmp_path: Path) -> None:
        host = MemoryReleaseHost()
        release = host.add_release("v3.4.0")
        path = tmp_path / "a.zip"
        path.write_bytes(b"zip")
        base = release.upload_url.split("{")[0]

        result = host.upload_asset(
            f"{base}?name=a.zip&label=Windows%20AMD64", path, content_type="application/zip"
        )

        assert isinstance(result, Ok)
        assert host.uploaded == ["a.zip"]
        assert host.labels["a.zip"] == "Windows AMD64"
        assert host.content_types["a.zip"] == "application/zip"

    def test_duplicate_upload_rejected(self, tmp_path: Path) -> None:
        host = MemoryReleaseHost()
        release = host.add_release("v3.4.0")
        host.put_asset("v3.4.0", "a.zip", b"old")
        path = tmp_path / "a.zip"
        path.write_bytes(b"new")
        base = release.upload_url.split("{")[0]

        url = f"{base}?name=a.zip&label=x"
        result = host.upload_asset(url, path, content_type="application/zip")

        assert isinstance(result, Err)
        assert result.error.kind == "remote_api"
