"""Digest algorithms known to the manifest format.

Names are the BSD-style tags written into the multi-algorithm manifest
(``SHA3-256 (file) = ...``). Each maps onto a :mod:`hashlib` constructor
name. Which of them a deployment actually uses, and in which order, comes
from configuration; the order there is the manifest rank.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hashlib import _Hash

__all__ = [
    "DigestAlgorithm",
    "KNOWN_ALGORITHMS",
    "DEFAULT_ALGORITHMS",
    "PRIMARY_ALGORITHM",
    "lookup_algorithm",
]


@dataclass(frozen=True, slots=True)
class DigestAlgorithm:
    """A named digest algorithm.

    Attributes:
        name: Manifest tag (e.g. "SHA256", "BLAKE2b").
        hashlib_name: Name accepted by ``hashlib.new``.
        digest_size: Output length in bytes.
    """

    name: str
    hashlib_name: str
    digest_size: int

    def new(self) -> _Hash:
        """Return a fresh accumulator.

        Raises:
            ValueError: If the running interpreter cannot provide it.
        """
        return hashlib.new(self.hashlib_name)

    @property
    def hex_length(self) -> int:
        return self.digest_size * 2


KNOWN_ALGORITHMS: dict[str, DigestAlgorithm] = {
    a.name: a
    for a in (
        DigestAlgorithm("SHA1", "sha1", 20),
        DigestAlgorithm("SHA224", "sha224", 28),
        DigestAlgorithm("SHA256", "sha256", 32),
        DigestAlgorithm("SHA384", "sha384", 48),
        DigestAlgorithm("SHA512", "sha512", 64),
        # OpenSSL-backed only; probed before use.
        DigestAlgorithm("SHA512/256", "sha512_256", 32),
        DigestAlgorithm("SHA3-256", "sha3_256", 32),
        DigestAlgorithm("SHA3-384", "sha3_384", 48),
        DigestAlgorithm("SHA3-512", "sha3_512", 64),
        DigestAlgorithm("BLAKE2b", "blake2b", 64),
        DigestAlgorithm("BLAKE2s", "blake2s", 32),
    )
}

DEFAULT_ALGORITHMS: tuple[str, ...] = (
    "SHA256",
    "SHA384",
    "SHA512",
    "SHA3-256",
    "SHA3-384",
    "SHA3-512",
    "BLAKE2b",
    "BLAKE2s",
)

# The single-algorithm manifest (sha256sums) always uses this one.
PRIMARY_ALGORITHM = "SHA256"


def lookup_algorithm(name: str) -> DigestAlgorithm | None:
    return KNOWN_ALGORITHMS.get(name)
