"""Integrity checks and self-healing for caches of optimized code artifacts.

Public API::

    from OptCache.CacheRepair import CacheSweeper, CacheValidator, resolve_loader

    validator = CacheValidator(resolve_loader())
    report = CacheSweeper(validator).sweep("/data/app/code_cache/secondary-dexes")
"""

from __future__ import annotations

__version__ = "0.1.0"

from .diagnostics import (
    DiagnosticSignature,
    DiagnosticValue,
    bytes_to_hex,
    capture_signature,
    content_digest,
    read_header_hex,
)
from .errors import (
    ArtifactLoadError,
    CacheRepairError,
    ChecksumMismatchError,
    ConfigurationError,
    MalformedHeaderError,
    TruncatedArtifactError,
    VersionMismatchError,
)
from .handles import HandleSource, close_if_matches
from .loaders import ArtifactHandle, ArtifactLoader, OptimizedArtifactLoader, resolve_loader
from .logsink import LoggingSink, LogSink
from .paths import OPTIMIZED_SUFFIX, derive_path
from .probe import ProbeResult, ProbeStatus, probe_artifact, try_load
from .settings import CacheRepairSettings, load_settings
from .sweeper import CacheSweeper, SweepReport, suffix_matcher
from .validator import ArtifactStatus, CacheValidator, ValidationOutcome

__all__ = [
    "__version__",
    "ArtifactHandle",
    "ArtifactLoadError",
    "ArtifactLoader",
    "ArtifactStatus",
    "CacheRepairError",
    "CacheRepairSettings",
    "CacheSweeper",
    "CacheValidator",
    "ChecksumMismatchError",
    "ConfigurationError",
    "DiagnosticSignature",
    "DiagnosticValue",
    "HandleSource",
    "LogSink",
    "LoggingSink",
    "MalformedHeaderError",
    "OPTIMIZED_SUFFIX",
    "OptimizedArtifactLoader",
    "ProbeResult",
    "ProbeStatus",
    "SweepReport",
    "TruncatedArtifactError",
    "ValidationOutcome",
    "VersionMismatchError",
    "bytes_to_hex",
    "capture_signature",
    "close_if_matches",
    "content_digest",
    "derive_path",
    "load_settings",
    "probe_artifact",
    "read_header_hex",
    "resolve_loader",
    "suffix_matcher",
    "try_load",
]
