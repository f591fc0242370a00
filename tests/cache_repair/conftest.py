"""Shared fixtures for the cache_repair test suite."""

from __future__ import annotations

import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import pytest

from OptCache.CacheRepair.diagnostics import HEADER_SIZE
from OptCache.CacheRepair.loaders import OPTIMIZED_MAGIC, OptimizedHeader


class RecordingSink:
    """Log sink that keeps every message for assertions."""

    def __init__(self) -> None:
        self.records: List[Tuple[str, Optional[BaseException]]] = []

    def log(self, message: str, error: Optional[BaseException] = None) -> None:
        self.records.append((message, error))

    @property
    def messages(self) -> List[str]:
        return [message for message, _ in self.records]


@dataclass
class FakeHandle:
    path: str
    closed: bool = False

    def close(self) -> None:
        self.closed = True


@dataclass
class FakeLoader:
    """Loader that accepts everything except paths listed in ``reject``."""

    reject: set = field(default_factory=set)
    calls: List[Tuple[str, str, int]] = field(default_factory=list)
    handles: List[FakeHandle] = field(default_factory=list)

    def load(self, archive_path: str, optimized_path: str, flags: int = 0) -> FakeHandle:
        self.calls.append((archive_path, optimized_path, flags))
        if Path(optimized_path).name in self.reject:
            raise ValueError(f"cannot open {optimized_path}")
        handle = FakeHandle(optimized_path)
        self.handles.append(handle)
        return handle


@dataclass
class FakeHolder:
    handle: Optional[FakeHandle] = None

    def get_handle(self) -> Optional[FakeHandle]:
        return self.handle


def build_artifact(
    dex: bytes = b"dex\n035\x00" + bytes(range(64)),
    deps: bytes = b"deps" * 4,
    opt: bytes = b"opt-data" * 8,
    *,
    magic: bytes = OPTIMIZED_MAGIC,
    version: bytes = b"036\x00",
    checksum: Optional[int] = None,
) -> bytes:
    """Assemble an optimized artifact: header, dex, deps and opt sections."""

    dex_offset = HEADER_SIZE
    deps_offset = dex_offset + len(dex)
    opt_offset = deps_offset + len(deps)
    body = dex + deps + opt
    if checksum is None:
        checksum = zlib.adler32(deps + opt) & 0xFFFFFFFF
    header = OptimizedHeader(
        magic=magic,
        version=version,
        dex_offset=dex_offset,
        dex_length=len(dex),
        deps_offset=deps_offset,
        deps_length=len(deps),
        opt_offset=opt_offset,
        opt_length=len(opt),
        flags=0,
        checksum=checksum,
    )
    return header.pack() + body


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def fake_loader() -> FakeLoader:
    return FakeLoader()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    path = tmp_path / "code_cache" / "secondary-dexes"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def make_archive(cache_dir: Path) -> Callable[[str], Path]:
    def _make(name: str) -> Path:
        archive = cache_dir / name
        archive.write_bytes(b"PK\x03\x04" + name.encode("utf-8"))
        return archive

    return _make


@pytest.fixture
def make_artifact(cache_dir: Path) -> Callable[..., Path]:
    """Write an optimized artifact named ``name`` into the cache directory."""

    def _make(name: str, data: Optional[bytes] = None) -> Path:
        artifact = cache_dir / name
        artifact.write_bytes(build_artifact() if data is None else data)
        return artifact

    return _make


@pytest.fixture
def artifact_bytes() -> Callable[..., bytes]:
    return build_artifact


@pytest.fixture
def holder_factory() -> Callable[[Optional[str]], FakeHolder]:
    def _make(path: Optional[str] = None) -> FakeHolder:
        return FakeHolder(FakeHandle(path) if path is not None else None)

    return _make
