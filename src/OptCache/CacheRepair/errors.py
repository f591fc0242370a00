"""Exception hierarchy shared across cache probing, repair, and configuration.

Most failures in the repair path are absorbed and logged rather than raised:
a corrupt artifact is something this package fixes, not something it reports
upwards.  The classes below exist for the two places where raising is the
right answer: loaders signalling that an artifact cannot be opened, and
configuration inputs that cannot be honoured.
"""

from __future__ import annotations

import os
from typing import Optional, Union

__all__ = [
    "CacheRepairError",
    "ConfigurationError",
    "ArtifactLoadError",
    "MalformedHeaderError",
    "VersionMismatchError",
    "TruncatedArtifactError",
    "ChecksumMismatchError",
]


class CacheRepairError(RuntimeError):
    """Base exception for optimized-artifact cache failures."""


class ConfigurationError(CacheRepairError):
    """Raised when settings, loader names, or CLI inputs are invalid."""


class ArtifactLoadError(CacheRepairError):
    """Raised by a loader when an optimized artifact cannot be opened."""

    def __init__(
        self,
        message: str,
        *,
        path: Optional[Union[str, os.PathLike]] = None,
    ) -> None:
        super().__init__(message)
        self.path = os.fspath(path) if path is not None else None


class MalformedHeaderError(ArtifactLoadError):
    """Raised when the artifact header does not carry the expected magic."""


class VersionMismatchError(ArtifactLoadError):
    """Raised when the header names a format version the loader does not support."""


class TruncatedArtifactError(ArtifactLoadError):
    """Raised when the file is shorter than the sections its header describes."""


class ChecksumMismatchError(ArtifactLoadError):
    """Raised when the embedded checksum does not match the artifact content."""
