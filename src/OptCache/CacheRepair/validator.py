# === NAVMAP v1 ===
# {
#   "module": "OptCache.CacheRepair.validator",
#   "purpose": "Validate one cached optimized artifact and repair it when the loader rejects it",
#   "sections": [
#     {"id": "types", "name": "Validation Result Types", "anchor": "TYP", "kind": "models"},
#     {"id": "validator", "name": "CacheValidator", "anchor": "VAL", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Validate one cached optimized artifact and repair it when the loader rejects it.

Repair order for a rejected artifact:
- capture the diagnostic signature (the file must still exist)
- release any handle the caller's holder has open on it
- delete the file
- log one line with signature, delete outcome and the load error

A ``False`` verdict is the whole user-visible effect; the next compilation
attempt regenerates the artifact.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .diagnostics import HEADER_SIZE, DiagnosticSignature, capture_signature, normalize_digest_algorithm
from .handles import HandleSource, close_if_matches
from .loaders import ArtifactLoader, resolve_loader
from .logsink import LogSink, resolve_sink
from .paths import OPTIMIZED_SUFFIX, PathLike
from .probe import ProbeStatus, probe_artifact

if TYPE_CHECKING:  # pragma: no cover
    from .settings import CacheRepairSettings

__all__ = ["ArtifactStatus", "ValidationOutcome", "CacheValidator"]


# ============================================================================
# VALIDATION RESULT TYPES (TYP)
# ============================================================================


class ArtifactStatus(str, enum.Enum):
    VALID = "valid"
    MISSING = "missing"
    CORRUPT = "corrupt"


_STATUS_BY_PROBE = {
    ProbeStatus.VALID: ArtifactStatus.VALID,
    ProbeStatus.MISSING: ArtifactStatus.MISSING,
    ProbeStatus.LOAD_FAILED: ArtifactStatus.CORRUPT,
}


@dataclass(frozen=True)
class ValidationOutcome:
    """Verdict and repair actions for one archive/artifact pair."""

    source_archive: Path
    optimized_path: Path
    status: ArtifactStatus
    signature: Optional[DiagnosticSignature] = None
    load_error: Optional[str] = None
    handle_closed: bool = False
    deleted: bool = False
    delete_error: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.status is ArtifactStatus.VALID

    def to_mapping(self) -> dict:
        return {
            "source_archive": str(self.source_archive),
            "optimized_path": str(self.optimized_path),
            "status": self.status.value,
            "signature": self.signature.to_mapping() if self.signature else None,
            "load_error": self.load_error,
            "handle_closed": self.handle_closed,
            "deleted": self.deleted,
            "delete_error": self.delete_error,
        }


# ============================================================================
# VALIDATOR (VAL)
# ============================================================================


class CacheValidator:
    """Probe a cached artifact and delete it if the loader rejects it."""

    def __init__(
        self,
        loader: ArtifactLoader,
        *,
        sink: Optional[LogSink] = None,
        suffix: str = OPTIMIZED_SUFFIX,
        flags: int = 0,
        digest_algorithm: str = "md5",
        header_size: int = HEADER_SIZE,
        dry_run: bool = False,
    ) -> None:
        self.loader = loader
        self.sink = resolve_sink(sink)
        self.suffix = suffix
        self.flags = flags
        self.digest_algorithm = normalize_digest_algorithm(digest_algorithm)
        self.header_size = header_size
        self.dry_run = dry_run

    @classmethod
    def from_settings(
        cls,
        settings: "CacheRepairSettings",
        *,
        loader: Optional[ArtifactLoader] = None,
        sink: Optional[LogSink] = None,
    ) -> "CacheValidator":
        return cls(
            loader if loader is not None else resolve_loader(settings.loader),
            sink=sink,
            suffix=settings.optimized_suffix,
            flags=settings.load_flags,
            digest_algorithm=settings.digest_algorithm,
            header_size=settings.header_size,
            dry_run=settings.dry_run,
        )

    def validate(
        self,
        source_archive: PathLike,
        cache_dir: PathLike,
        holder: Optional[HandleSource] = None,
    ) -> bool:
        """Return ``True`` when the artifact is valid and was left in place."""

        return self.check(source_archive, cache_dir, holder).valid

    def check(
        self,
        source_archive: PathLike,
        cache_dir: PathLike,
        holder: Optional[HandleSource] = None,
    ) -> ValidationOutcome:
        """Validate and, when needed, repair; return the full outcome."""

        probe = probe_artifact(
            source_archive,
            cache_dir,
            self.loader,
            flags=self.flags,
            suffix=self.suffix,
            sink=self.sink,
        )
        status = _STATUS_BY_PROBE[probe.status]
        archive = Path(source_archive)
        if status is ArtifactStatus.VALID:
            return ValidationOutcome(archive, probe.optimized_path, status)

        signature = None
        if status is ArtifactStatus.CORRUPT:
            signature = capture_signature(
                probe.optimized_path,
                algorithm=self.digest_algorithm,
                header_size=self.header_size,
            )

        if self.dry_run:
            if signature is not None:
                self.sink.log(
                    f"DRY-RUN: optimized artifact {probe.optimized_path} failed to load, "
                    f"header content: {signature.header_hex}, "
                    f"content {self.digest_algorithm}: {signature.content_digest_hex}, "
                    "would delete file",
                    probe.error,
                )
            return ValidationOutcome(
                archive,
                probe.optimized_path,
                status,
                signature=signature,
                load_error=_describe(probe.error),
            )

        handle_closed = close_if_matches(holder, probe.optimized_path, self.sink)
        deleted, delete_error = self._delete(probe.optimized_path)

        if signature is not None:
            self.sink.log(
                f"optimized artifact {probe.optimized_path} failed to load, "
                f"header content: {signature.header_hex}, "
                f"content {self.digest_algorithm}: {signature.content_digest_hex}, "
                f"delete file {deleted}",
                probe.error,
            )
        return ValidationOutcome(
            archive,
            probe.optimized_path,
            status,
            signature=signature,
            load_error=_describe(probe.error),
            handle_closed=handle_closed,
            deleted=deleted,
            delete_error=delete_error,
        )

    def _delete(self, path: Path) -> tuple[bool, Optional[str]]:
        try:
            path.unlink()
        except FileNotFoundError:
            return False, None
        except OSError as exc:
            self.sink.log(f"cannot delete optimized artifact {path}", exc)
            return False, str(exc)
        return True, None

    def __repr__(self) -> str:
        return (
            f"CacheValidator(loader={self.loader!r}, suffix={self.suffix!r}, "
            f"dry_run={self.dry_run})"
        )


def _describe(error: Optional[BaseException]) -> Optional[str]:
    if error is None:
        return None
    return f"{type(error).__name__}: {error}"
