"""Settings defaults, validation and OPTCACHE_* environment overrides."""

from __future__ import annotations

from pathlib import Path

import pytest

from OptCache.CacheRepair.errors import ConfigurationError
from OptCache.CacheRepair.settings import CacheRepairSettings, load_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "OPTCACHE_CACHE_DIR",
        "OPTCACHE_DIGEST_ALGORITHM",
        "OPTCACHE_ARCHIVE_SUFFIXES",
        "OPTCACHE_LOGGING__LEVEL",
        "OPTCACHE_DRY_RUN",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = CacheRepairSettings()

    assert settings.cache_dir is None
    assert settings.optimized_suffix == ".dex"
    assert settings.archive_suffixes == [".zip"]
    assert settings.header_size == 40
    assert settings.digest_algorithm == "md5"
    assert settings.loader == "default"
    assert settings.purge_archives is False
    assert settings.dry_run is False
    assert settings.logging.level == "INFO"


def test_environment_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("OPTCACHE_CACHE_DIR", str(tmp_path))
    monkeypatch.setenv("OPTCACHE_DIGEST_ALGORITHM", "SHA512")
    monkeypatch.setenv("OPTCACHE_ARCHIVE_SUFFIXES", '[".zip", ".jar"]')
    monkeypatch.setenv("OPTCACHE_LOGGING__LEVEL", "debug")
    monkeypatch.setenv("OPTCACHE_DRY_RUN", "true")

    settings = load_settings()

    assert settings.cache_dir == tmp_path
    assert settings.digest_algorithm == "sha512"
    assert settings.archive_suffixes == [".zip", ".jar"]
    assert settings.logging.level == "DEBUG"
    assert settings.dry_run is True


def test_explicit_overrides_win_and_none_is_ignored(monkeypatch) -> None:
    monkeypatch.setenv("OPTCACHE_DIGEST_ALGORITHM", "sha1")

    assert load_settings(digest_algorithm="sha256").digest_algorithm == "sha256"
    assert load_settings(digest_algorithm=None).digest_algorithm == "sha1"


@pytest.mark.parametrize(
    "overrides",
    [
        {"optimized_suffix": "dex"},
        {"optimized_suffix": "."},
        {"digest_algorithm": "crc32"},
        {"archive_suffixes": ["  "]},
        {"header_size": -1},
        {"logging": {"level": "chatty"}},
    ],
)
def test_invalid_settings_raise_configuration_error(overrides) -> None:
    with pytest.raises(ConfigurationError):
        load_settings(**overrides)
