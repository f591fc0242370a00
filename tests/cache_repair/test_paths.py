"""Cache path derivation for optimized artifacts."""

from __future__ import annotations

from pathlib import Path

import pytest

from OptCache.CacheRepair.paths import derive_path


@pytest.mark.parametrize(
    ("source", "expected_name"),
    [
        ("app.apk.classes2.zip", "app.apk.classes2.dex"),
        ("/data/app/base.apk.classes3.zip", "base.apk.classes3.dex"),
        ("/data/app/classes", "classes.dex"),
        ("/data/app/already.dex", "already.dex"),
        ("/data/app/trailing.", "trailing.dex"),
        ("/data/app/.zip", ".dex"),
    ],
)
def test_derive_path_replaces_or_appends_suffix(source: str, expected_name: str) -> None:
    assert derive_path(source, "/cache") == Path("/cache") / expected_name


def test_derive_path_matches_documented_example() -> None:
    assert derive_path("app.apk.classes2.zip", "/cache").as_posix() == "/cache/app.apk.classes2.dex"


def test_derive_path_appends_suffix_exactly_once() -> None:
    derived = derive_path("/src/noext", "/cache")
    assert derived.name.count(".dex") == 1


def test_derive_path_is_idempotent_for_same_cache_dir() -> None:
    first = derive_path("/src/app.apk.classes2.zip", "/cache")
    again = derive_path(first, "/cache")
    assert again == first
    assert derive_path("/src/app.apk.classes2.zip", "/cache") == first


def test_derive_path_relocates_only_directory() -> None:
    derived = derive_path("/somewhere/else/lib.dex", "/cache")
    assert derived == Path("/cache/lib.dex")


def test_derive_path_honours_custom_suffix(tmp_path: Path) -> None:
    derived = derive_path(tmp_path / "lib.jar", tmp_path / "opt", suffix=".odex")
    assert derived == tmp_path / "opt" / "lib.odex"
