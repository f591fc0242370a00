# === NAVMAP v1 ===
# {
#   "module": "OptCache.CacheRepair.loaders",
#   "purpose": "Loader protocols, reference optimized-artifact loader, and loader discovery",
#   "sections": [
#     {"id": "protocols", "name": "Loader Protocols", "anchor": "PRT", "kind": "api"},
#     {"id": "reference", "name": "Reference Loader", "anchor": "REF", "kind": "api"},
#     {"id": "discovery", "name": "Loader Discovery", "anchor": "DSC", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Loader protocols, reference optimized-artifact loader, and loader discovery.

The repair path never interprets artifact contents itself; it asks a loader
to open the artifact and treats any failure as corruption.  Embedding
applications supply their own loader, either directly or by name through the
``optcache.loader`` entry point group.  :class:`OptimizedArtifactLoader` is
the built-in loader used by the CLI: it opens an artifact the way the
platform loader would and rejects anything whose header, section ranges, or
checksum do not add up.
"""

from __future__ import annotations

import importlib
import logging
import os
import struct
import zlib
from dataclasses import dataclass, field
from importlib import metadata
from typing import Any, Dict, Optional, Protocol, Tuple

from .diagnostics import HEADER_SIZE
from .errors import (
    ArtifactLoadError,
    ChecksumMismatchError,
    ConfigurationError,
    MalformedHeaderError,
    TruncatedArtifactError,
    VersionMismatchError,
)

__all__ = [
    "ArtifactHandle",
    "ArtifactLoader",
    "OptimizedHeader",
    "OptimizedArtifact",
    "OptimizedArtifactLoader",
    "LOADER_ENTRY_POINT_GROUP",
    "parse_header",
    "resolve_loader",
]

logger = logging.getLogger(__name__)

LOADER_ENTRY_POINT_GROUP = "optcache.loader"

OPTIMIZED_MAGIC = b"dey\n"
SUPPORTED_VERSIONS = frozenset({b"035\0", b"036\0"})
_HEADER_STRUCT = struct.Struct("<4s4s8I")


# ============================================================================
# LOADER PROTOCOLS (PRT)
# ============================================================================


class ArtifactHandle(Protocol):
    """Open reference to a loaded optimized artifact."""

    path: str

    def close(self) -> None:  # pragma: no cover - protocol
        """Release the underlying file."""


class ArtifactLoader(Protocol):
    """Platform loader capable of opening optimized artifacts."""

    def load(
        self, archive_path: str, optimized_path: str, flags: int = 0
    ) -> ArtifactHandle:  # pragma: no cover - protocol
        """Open ``optimized_path`` for ``archive_path`` or raise on failure."""


# ============================================================================
# REFERENCE LOADER (REF)
# ============================================================================


@dataclass(frozen=True)
class OptimizedHeader:
    """Decoded 40-byte optimized-artifact header."""

    magic: bytes
    version: bytes
    dex_offset: int
    dex_length: int
    deps_offset: int
    deps_length: int
    opt_offset: int
    opt_length: int
    flags: int
    checksum: int

    @property
    def checksummed_range(self) -> Tuple[int, int]:
        return self.deps_offset, self.opt_offset + self.opt_length

    def pack(self) -> bytes:
        return _HEADER_STRUCT.pack(
            self.magic,
            self.version,
            self.dex_offset,
            self.dex_length,
            self.deps_offset,
            self.deps_length,
            self.opt_offset,
            self.opt_length,
            self.flags,
            self.checksum,
        )


def parse_header(data: bytes, *, path: Optional[str] = None) -> OptimizedHeader:
    """Decode the header at the start of ``data``."""

    if len(data) < HEADER_SIZE:
        raise TruncatedArtifactError(
            f"header is {len(data)} bytes, expected {HEADER_SIZE}", path=path
        )
    magic, version, *fields = _HEADER_STRUCT.unpack_from(data)
    if magic != OPTIMIZED_MAGIC:
        raise MalformedHeaderError(f"bad magic {magic!r}", path=path)
    if version not in SUPPORTED_VERSIONS:
        raise VersionMismatchError(f"unsupported version {version!r}", path=path)
    return OptimizedHeader(magic, version, *fields)


@dataclass
class OptimizedArtifact:
    """Handle returned by :class:`OptimizedArtifactLoader`."""

    path: str
    archive_path: str
    header: OptimizedHeader
    flags: int = 0
    closed: bool = field(default=False)

    def close(self) -> None:
        self.closed = True


class OptimizedArtifactLoader:
    """Open optimized artifacts, validating header, section ranges and checksum."""

    NAME = "default"

    def load(self, archive_path: str, optimized_path: str, flags: int = 0) -> OptimizedArtifact:
        if not os.path.exists(archive_path):
            raise ArtifactLoadError(f"source archive {archive_path} is missing", path=optimized_path)
        try:
            with open(optimized_path, "rb") as stream:
                data = stream.read()
        except OSError as exc:
            raise ArtifactLoadError(f"cannot read {optimized_path}: {exc}", path=optimized_path) from exc

        header = parse_header(data, path=optimized_path)
        size = len(data)
        if header.dex_offset < HEADER_SIZE or header.dex_length == 0:
            raise MalformedHeaderError(
                f"dex section at {header.dex_offset}+{header.dex_length} is invalid",
                path=optimized_path,
            )
        sections = (
            ("dex", header.dex_offset, header.dex_length),
            ("deps", header.deps_offset, header.deps_length),
            ("opt", header.opt_offset, header.opt_length),
        )
        for name, offset, length in sections:
            if offset + length > size:
                raise TruncatedArtifactError(
                    f"{name} section {offset}+{length} exceeds file size {size}",
                    path=optimized_path,
                )

        start, end = header.checksummed_range
        actual = zlib.adler32(data[start:end]) & 0xFFFFFFFF
        if actual != header.checksum:
            raise ChecksumMismatchError(
                f"checksum {actual:#010x} does not match header {header.checksum:#010x}",
                path=optimized_path,
            )
        return OptimizedArtifact(
            path=optimized_path,
            archive_path=archive_path,
            header=header,
            flags=flags,
        )

    def __repr__(self) -> str:
        return "OptimizedArtifactLoader()"


# ============================================================================
# LOADER DISCOVERY (DSC)
# ============================================================================

_BUILTIN_LOADERS: Dict[str, Any] = {
    OptimizedArtifactLoader.NAME: OptimizedArtifactLoader,
}


def _instantiate(candidate: Any, name: str) -> ArtifactLoader:
    loader = candidate() if isinstance(candidate, type) else candidate
    if not callable(getattr(loader, "load", None)):
        raise ConfigurationError(f"loader '{name}' does not implement a load method")
    return loader


def _load_from_import_path(name: str) -> Any:
    module_name, _, attribute = name.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"cannot import loader module '{module_name}': {exc}") from exc
    try:
        return getattr(module, attribute)
    except AttributeError as exc:
        raise ConfigurationError(f"module '{module_name}' has no attribute '{attribute}'") from exc


def _load_from_entry_points(name: str) -> Optional[Any]:
    for entry in metadata.entry_points().select(group=LOADER_ENTRY_POINT_GROUP):
        if entry.name != name:
            continue
        try:
            return entry.load()
        except Exception as exc:
            raise ConfigurationError(f"loader plugin '{name}' failed to load: {exc}") from exc
    return None


def resolve_loader(name: str = OptimizedArtifactLoader.NAME) -> ArtifactLoader:
    """Resolve ``name`` to a loader instance.

    ``name`` may be a built-in loader name, a ``module:attribute`` import
    path, or the name of an ``optcache.loader`` entry point.  Classes are
    instantiated without arguments.
    """

    key = (name or OptimizedArtifactLoader.NAME).strip()
    if key in _BUILTIN_LOADERS:
        candidate = _BUILTIN_LOADERS[key]
    elif ":" in key:
        candidate = _load_from_import_path(key)
    else:
        candidate = _load_from_entry_points(key)
        if candidate is None:
            raise ConfigurationError(f"unknown loader '{key}'")
    loader = _instantiate(candidate, key)
    logger.debug("resolved loader %s -> %r", key, loader)
    return loader
