"""Adapters for the remote release-hosting platform."""

from .auth import Credentials, resolve_credentials
from .host import GitHubReleaseHost, MemoryReleaseHost, ReleaseHost
from .http import HttpClient, HttpError, MockHttpClient, RealHttpClient

__all__ = [
    # auth
    "Credentials",
    "resolve_credentials",
    # host
    "GitHubReleaseHost",
    "MemoryReleaseHost",
    "ReleaseHost",
    # http
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
]
