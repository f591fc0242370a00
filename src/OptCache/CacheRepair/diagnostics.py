# === NAVMAP v1 ===
# {
#   "module": "OptCache.CacheRepair.diagnostics",
#   "purpose": "Header and content-digest fingerprints for corrupt optimized artifacts",
#   "sections": [
#     {"id": "types", "name": "Diagnostic Result Types", "anchor": "TYP", "kind": "models"},
#     {"id": "hex", "name": "Hex Rendering", "anchor": "HEX", "kind": "api"},
#     {"id": "read", "name": "Header & Digest Readers", "anchor": "READ", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Header and content-digest fingerprints for corrupt optimized artifacts.

When an artifact fails to load, the repair path deletes it.  Before that
happens the first bytes of the header and a digest of the remaining content
are captured so the log shows *what* the bad file looked like.  These readers
are diagnostic-only: they never raise, and a failed read is reported as an
``unavailable`` value instead of an exception.

Header layout (little-endian, 40 bytes)::

    magic(8) dexOffset(4) dexLength(4) depsOffset(4) depsLength(4)
    optOffset(4) optLength(4) flags(4) checksum(4)
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from typing import Optional, Union

from .errors import ConfigurationError

__all__ = [
    "HEADER_SIZE",
    "SUPPORTED_DIGESTS",
    "DiagnosticValue",
    "DiagnosticSignature",
    "normalize_digest_algorithm",
    "bytes_to_hex",
    "read_header",
    "read_header_hex",
    "read_digest",
    "content_digest",
    "capture_signature",
]

HEADER_SIZE = 40
SUPPORTED_DIGESTS = ("md5", "sha1", "sha256", "sha512")
_DIGEST_CHUNK_SIZE = 64 * 1024

PathLike = Union[str, os.PathLike]


# ============================================================================
# DIAGNOSTIC RESULT TYPES (TYP)
# ============================================================================


@dataclass(frozen=True)
class DiagnosticValue:
    """Outcome of a diagnostic read: either a rendered value or a failure reason."""

    value: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def unavailable(cls, reason: str) -> "DiagnosticValue":
        return cls(value=None, error=reason)

    def __str__(self) -> str:
        if self.error is not None:
            return f"unavailable: {self.error}"
        return self.value or ""


@dataclass(frozen=True)
class DiagnosticSignature:
    """Fingerprint of a corrupt artifact captured just before it is deleted."""

    header: DiagnosticValue
    digest: DiagnosticValue
    algorithm: str = "md5"

    @property
    def header_hex(self) -> str:
        return str(self.header)

    @property
    def content_digest_hex(self) -> str:
        return str(self.digest)

    def to_mapping(self) -> dict:
        """Return a JSON-friendly mapping for CLI output and structured logs."""

        return {
            "header_hex": self.header_hex,
            "content_digest": self.content_digest_hex,
            "algorithm": self.algorithm,
        }


def normalize_digest_algorithm(algorithm: Optional[str]) -> str:
    """Lower-case ``algorithm`` and reject anything outside :data:`SUPPORTED_DIGESTS`."""

    candidate = (algorithm or "md5").strip().lower()
    if candidate not in SUPPORTED_DIGESTS:
        raise ConfigurationError(f"unsupported digest algorithm '{candidate}'")
    return candidate


# ============================================================================
# HEX RENDERING (HEX)
# ============================================================================


def bytes_to_hex(data: bytes) -> str:
    """Render ``data`` as upper-case hex, two digits per byte, no separators.

    Examples:
        >>> bytes_to_hex(bytes([0x00, 0xFF, 0x1A]))
        '00FF1A'
    """

    return bytes(data).hex().upper()


# ============================================================================
# HEADER & DIGEST READERS (READ)
# ============================================================================


def read_header(path: PathLike, size: int = HEADER_SIZE) -> DiagnosticValue:
    """Read up to ``size`` leading bytes of ``path`` as lower-case hex.

    Short files yield whatever prefix exists.
    """

    try:
        with open(path, "rb") as stream:
            header = stream.read(size)
    except OSError as exc:
        return DiagnosticValue.unavailable(f"read error {exc}")
    return DiagnosticValue(value=header.hex())


def read_header_hex(path: PathLike, size: int = HEADER_SIZE) -> str:
    return str(read_header(path, size))


def read_digest(
    path: PathLike,
    algorithm: str = "md5",
    *,
    skip: int = HEADER_SIZE,
) -> DiagnosticValue:
    """Digest every byte of ``path`` after the first ``skip`` header bytes.

    The header region never contributes to the digest, so two artifacts with
    the same body but different offsets or checksums hash identically.
    """

    try:
        hasher = hashlib.new(normalize_digest_algorithm(algorithm))
        with open(path, "rb") as stream:
            stream.seek(skip)
            for chunk in iter(lambda: stream.read(_DIGEST_CHUNK_SIZE), b""):
                hasher.update(chunk)
    except (OSError, ValueError, ConfigurationError) as exc:
        return DiagnosticValue.unavailable(f"digest error {exc}")
    return DiagnosticValue(value=bytes_to_hex(hasher.digest()))


def content_digest(path: PathLike, algorithm: str = "md5") -> str:
    return str(read_digest(path, algorithm))


def capture_signature(
    path: PathLike,
    *,
    algorithm: str = "md5",
    header_size: int = HEADER_SIZE,
) -> DiagnosticSignature:
    """Capture header hex and content digest of ``path`` in one call."""

    return DiagnosticSignature(
        header=read_header(path, header_size),
        digest=read_digest(path, algorithm, skip=header_size),
        algorithm=algorithm,
    )
