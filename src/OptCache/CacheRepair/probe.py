"""Load probe: ask the loader whether a cached optimized artifact opens.

The loader's own checks (magic, length fields, embedded checksum) are the
source of truth for validity; this module only turns its success or failure
into a verdict.
"""

from __future__ import annotations

import enum
import os
from pathlib import Path
from typing import NamedTuple, Optional

from .loaders import ArtifactLoader
from .logsink import LogSink, resolve_sink
from .paths import OPTIMIZED_SUFFIX, PathLike, derive_path

__all__ = ["ProbeStatus", "ProbeResult", "probe_artifact", "try_load"]


class ProbeStatus(str, enum.Enum):
    VALID = "valid"
    MISSING = "missing"
    LOAD_FAILED = "load_failed"


class ProbeResult(NamedTuple):
    """Result of probing one cached artifact."""

    status: ProbeStatus
    """Verdict of the probe"""

    optimized_path: Path
    """Derived cache path that was probed"""

    error: Optional[Exception] = None
    """Loader exception when ``status`` is ``LOAD_FAILED``"""

    @property
    def valid(self) -> bool:
        return self.status is ProbeStatus.VALID


def probe_artifact(
    source_archive: PathLike,
    cache_dir: PathLike,
    loader: ArtifactLoader,
    *,
    flags: int = 0,
    suffix: str = OPTIMIZED_SUFFIX,
    sink: Optional[LogSink] = None,
) -> ProbeResult:
    """Probe the optimized artifact derived from ``source_archive``.

    A missing artifact is reported as ``MISSING`` without touching the
    loader; that is the normal state before the first compilation or after
    an eviction.  Any exception raised by the loader is reported as
    ``LOAD_FAILED`` and carried on the result, as is a ``stat`` failure on
    the artifact path.
    """

    sink = resolve_sink(sink)
    optimized_path = derive_path(source_archive, cache_dir, suffix)
    try:
        present = optimized_path.exists()
    except OSError as exc:
        sink.log(f"cannot stat optimized artifact {optimized_path}", exc)
        return ProbeResult(ProbeStatus.LOAD_FAILED, optimized_path, exc)
    if not present:
        return ProbeResult(ProbeStatus.MISSING, optimized_path)

    archive_path = os.path.realpath(os.fspath(source_archive))
    try:
        handle = loader.load(archive_path, str(optimized_path), flags)
    except Exception as exc:
        return ProbeResult(ProbeStatus.LOAD_FAILED, optimized_path, exc)

    sink.log(f"test load of optimized artifact {optimized_path} succeeded")
    close = getattr(handle, "close", None)
    if callable(close):
        try:
            close()
        except Exception as exc:
            sink.log(f"closing probe handle for {optimized_path} failed", exc)
    return ProbeResult(ProbeStatus.VALID, optimized_path)


def try_load(
    source_archive: PathLike,
    cache_dir: PathLike,
    loader: ArtifactLoader,
    *,
    flags: int = 0,
    suffix: str = OPTIMIZED_SUFFIX,
    sink: Optional[LogSink] = None,
) -> bool:
    """Return ``True`` when the cached artifact for ``source_archive`` loads."""

    return probe_artifact(
        source_archive, cache_dir, loader, flags=flags, suffix=suffix, sink=sink
    ).valid
