"""Release bounded context.

Domain values and the canonical error payload shared by the hosting
adapters (``relpub.hosting``) and the pipeline services
(``relpub.services.release``).
"""

from __future__ import annotations

from .errors import ReleaseError, ReleaseErrorKind
from .model import (
    AssetCategory,
    FileDigestEntry,
    Release,
    ReleaseAsset,
    ReleaseTarget,
    bare_version,
    normalize_upload_url,
)

__all__ = [
    "AssetCategory",
    "FileDigestEntry",
    "Release",
    "ReleaseAsset",
    "ReleaseError",
    "ReleaseErrorKind",
    "ReleaseTarget",
    "bare_version",
    "normalize_upload_url",
]
