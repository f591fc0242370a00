# === NAVMAP v1 ===
# {
#   "module": "OptCache.CacheRepair.sweeper",
#   "purpose": "Apply the validate/repair cycle to every archive in a cache directory",
#   "sections": [
#     {"id": "matchers", "name": "Archive Matchers", "anchor": "MAT", "kind": "api"},
#     {"id": "report", "name": "SweepReport", "anchor": "TYP", "kind": "models"},
#     {"id": "sweeper", "name": "CacheSweeper", "anchor": "SWP", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Apply the validate/repair cycle to every archive in a cache directory.

Responsibilities:
- Enumerate candidate archives with an explicit name matcher
- Run :class:`CacheValidator` over each candidate without a handle holder
- Optionally purge archives whose artifact is invalid
- Accumulate per-entry outcomes; one failing entry never stops the sweep
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional

from .logsink import LogSink
from .paths import PathLike
from .validator import ArtifactStatus, CacheValidator, ValidationOutcome

if TYPE_CHECKING:  # pragma: no cover
    from .settings import CacheRepairSettings

__all__ = ["ArchiveMatcher", "suffix_matcher", "SweepReport", "CacheSweeper"]

logger = logging.getLogger(__name__)

ArchiveMatcher = Callable[[str], bool]

DEFAULT_ARCHIVE_SUFFIXES = (".zip",)


# ============================================================================
# ARCHIVE MATCHERS (MAT)
# ============================================================================


def suffix_matcher(*suffixes: str) -> ArchiveMatcher:
    """Match file names ending in any of ``suffixes``.

    The name must be longer than the suffix itself, so a bare ``.zip`` file
    is not a candidate.
    """

    wanted = tuple(suffixes) or DEFAULT_ARCHIVE_SUFFIXES

    def _match(name: str) -> bool:
        return any(name.endswith(suffix) and len(name) > len(suffix) for suffix in wanted)

    return _match


# ============================================================================
# SWEEP REPORT (TYP)
# ============================================================================


@dataclass
class SweepReport:
    """Accumulated outcome of one directory sweep."""

    cache_dir: Path
    scanned_count: int = 0
    valid_count: int = 0
    missing_count: int = 0
    corrupt_count: int = 0
    deleted_count: int = 0
    """Number of optimized artifacts removed."""

    archives_deleted_count: int = 0
    """Number of source archives removed when purging is enabled."""

    errors: List[str] = field(default_factory=list)
    entries: List[ValidationOutcome] = field(default_factory=list)

    def record(self, outcome: ValidationOutcome) -> None:
        self.entries.append(outcome)
        self.scanned_count += 1
        if outcome.status is ArtifactStatus.VALID:
            self.valid_count += 1
        elif outcome.status is ArtifactStatus.MISSING:
            self.missing_count += 1
        else:
            self.corrupt_count += 1
        if outcome.deleted:
            self.deleted_count += 1
        if outcome.delete_error:
            self.errors.append(f"Failed to delete {outcome.optimized_path}: {outcome.delete_error}")

    def to_mapping(self) -> dict:
        return {
            "cache_dir": str(self.cache_dir),
            "scanned": self.scanned_count,
            "valid": self.valid_count,
            "missing": self.missing_count,
            "corrupt": self.corrupt_count,
            "deleted": self.deleted_count,
            "archives_deleted": self.archives_deleted_count,
            "errors": list(self.errors),
            "entries": [entry.to_mapping() for entry in self.entries],
        }


# ============================================================================
# SWEEPER (SWP)
# ============================================================================


class CacheSweeper:
    """Validate every candidate archive in a flat cache directory."""

    def __init__(
        self,
        validator: CacheValidator,
        *,
        matcher: Optional[ArchiveMatcher] = None,
        sink: Optional[LogSink] = None,
        purge_archives: bool = False,
    ) -> None:
        self.validator = validator
        # Suffix match rather than a literal file name: real archives are
        # named after their source, e.g. "app.apk.classes2.zip".
        self.matcher = matcher or suffix_matcher(*DEFAULT_ARCHIVE_SUFFIXES)
        self.sink = sink if sink is not None else validator.sink
        self.purge_archives = purge_archives

    @classmethod
    def from_settings(
        cls,
        settings: "CacheRepairSettings",
        *,
        validator: Optional[CacheValidator] = None,
        sink: Optional[LogSink] = None,
    ) -> "CacheSweeper":
        validator = validator or CacheValidator.from_settings(settings, sink=sink)
        return cls(
            validator,
            matcher=suffix_matcher(*settings.archive_suffixes),
            sink=sink,
            purge_archives=settings.purge_archives,
        )

    def candidates(self, cache_dir: Path) -> Iterable[Path]:
        return sorted(
            entry for entry in cache_dir.iterdir() if entry.is_file() and self.matcher(entry.name)
        )

    def sweep(self, cache_dir: PathLike) -> SweepReport:
        """Validate and repair every candidate archive under ``cache_dir``."""

        root = Path(cache_dir)
        report = SweepReport(cache_dir=root)
        if not root.is_dir():
            logger.debug("cache directory %s does not exist; nothing to sweep", root)
            return report

        try:
            archives = list(self.candidates(root))
        except OSError as exc:
            msg = f"Failed to list {root}: {exc}"
            self.sink.log(msg, exc)
            report.errors.append(msg)
            return report

        for archive in archives:
            try:
                outcome = self.validator.check(archive, root)
            except Exception as exc:
                msg = f"Failed to validate {archive}: {exc}"
                self.sink.log(msg, exc)
                report.errors.append(msg)
                continue
            report.record(outcome)
            if outcome.status is ArtifactStatus.CORRUPT and not self.validator.dry_run:
                self.sink.log(
                    f"sweep delete invalid artifact {outcome.optimized_path}: {outcome.deleted}"
                )
            if not outcome.valid and self.purge_archives and not self.validator.dry_run:
                self._purge_archive(archive, report)

        logger.info(
            "Swept %s: %d scanned, %d corrupt, %d deleted",
            root,
            report.scanned_count,
            report.corrupt_count,
            report.deleted_count,
        )
        return report

    def _purge_archive(self, archive: Path, report: SweepReport) -> None:
        try:
            archive.unlink()
        except OSError as exc:
            msg = f"Failed to delete archive {archive}: {exc}"
            self.sink.log(msg, exc)
            report.errors.append(msg)
            return
        report.archives_deleted_count += 1
        self.sink.log(f"sweep deleted invalid archive {archive}")
