"""Find, create, or update the remote release for a version.

Creating only when no release with the exact name exists makes the
publish step safe to repeat: the second run finds the release the first
one created.
"""

from __future__ import annotations

from relpub.core.result import Err, Ok, Result
from relpub.hosting.host import ReleaseHost
from relpub.release.errors import ReleaseError
from relpub.release.model import Release, ReleaseTarget, normalize_upload_url

__all__ = ["find_release", "resolve_release", "patch_release"]


def _target(release: Release) -> ReleaseTarget:
    return ReleaseTarget(url=release.url, upload_url=normalize_upload_url(release.upload_url))


def find_release(host: ReleaseHost, version: str) -> Result[Release | None, ReleaseError]:
    """Return the release named exactly ``version``, or None."""
    listed = host.list_releases()
    if isinstance(listed, Err):
        return listed
    for release in listed.value:
        if release.name == version:
            return Ok(release)
    return Ok(None)


def resolve_release(
    host: ReleaseHost,
    version: str,
    *,
    body: str,
) -> Result[ReleaseTarget, ReleaseError]:
    """Return the release for ``version``, creating a draft if absent.

    Args:
        host: Remote release API.
        version: Release name and tag.
        body: Body used only when the release has to be created.
    """
    found = find_release(host, version)
    if isinstance(found, Err):
        return found
    if found.value is not None:
        return Ok(_target(found.value))

    created = host.create_release(version=version, body=body)
    if isinstance(created, Err):
        return created
    return Ok(_target(created.value))


def patch_release(
    host: ReleaseHost,
    version: str,
    *,
    body: str,
) -> Result[ReleaseTarget, ReleaseError]:
    """Replace the body of an existing release."""
    found = find_release(host, version)
    if isinstance(found, Err):
        return found
    if found.value is None:
        return Err(
            ReleaseError(
                kind="no_such_release",
                message=f"no such release: {version}",
                hint="run without --finalize first to create it",
            )
        )

    patched = host.patch_release(found.value, version=version, body=body)
    if isinstance(patched, Err):
        return patched
    return Ok(_target(patched.value))
