"""Header and content-digest fingerprints used when logging corrupt artifacts."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from OptCache.CacheRepair.diagnostics import (
    HEADER_SIZE,
    DiagnosticValue,
    bytes_to_hex,
    capture_signature,
    content_digest,
    normalize_digest_algorithm,
    read_digest,
    read_header,
    read_header_hex,
)
from OptCache.CacheRepair.errors import ConfigurationError

EMPTY_MD5 = "D41D8CD98F00B204E9800998ECF8427E"


def test_bytes_to_hex_is_uppercase_without_separators() -> None:
    assert bytes_to_hex(bytes([0x00, 0xFF, 0x1A])) == "00FF1A"
    assert bytes_to_hex(b"") == ""


def test_read_header_hex_reads_first_forty_bytes(tmp_path: Path) -> None:
    artifact = tmp_path / "a.dex"
    artifact.write_bytes(bytes(range(100)))

    header = read_header_hex(artifact)

    assert len(header) == 2 * HEADER_SIZE
    assert header == bytes(range(HEADER_SIZE)).hex()
    assert header == header.lower()


def test_read_header_hex_returns_prefix_for_short_file(tmp_path: Path) -> None:
    artifact = tmp_path / "short.dex"
    artifact.write_bytes(b"\x01\x02\xab")

    assert read_header_hex(artifact) == "0102ab"


def test_read_header_reports_unavailable_on_missing_file(tmp_path: Path) -> None:
    value = read_header(tmp_path / "missing.dex")

    assert not value.ok
    assert str(value).startswith("unavailable: read error")
    assert read_header_hex(tmp_path / "missing.dex").startswith("unavailable:")


def test_content_digest_skips_header_region(tmp_path: Path) -> None:
    body = b"optimized body bytes" * 10
    first = tmp_path / "first.dex"
    second = tmp_path / "second.dex"
    first.write_bytes(b"\x00" * HEADER_SIZE + body)
    second.write_bytes(b"\xff" * HEADER_SIZE + body)

    expected = hashlib.md5(body).hexdigest().upper()
    assert content_digest(first) == expected
    assert content_digest(second) == expected


def test_content_digest_of_header_only_file_is_empty_digest(tmp_path: Path) -> None:
    artifact = tmp_path / "header-only.dex"
    artifact.write_bytes(b"\x11" * HEADER_SIZE)

    assert content_digest(artifact) == EMPTY_MD5


def test_content_digest_supports_stronger_algorithms(tmp_path: Path) -> None:
    artifact = tmp_path / "a.dex"
    artifact.write_bytes(b"h" * HEADER_SIZE + b"payload")

    value = read_digest(artifact, "SHA256")

    assert value.ok
    assert value.value == hashlib.sha256(b"payload").hexdigest().upper()


def test_content_digest_never_raises(tmp_path: Path) -> None:
    value = read_digest(tmp_path / "missing.dex")

    assert not value.ok
    assert "digest error" in str(value)
    assert content_digest(tmp_path / "missing.dex").startswith("unavailable:")


def test_unknown_algorithm_is_reported_not_raised(tmp_path: Path) -> None:
    artifact = tmp_path / "a.dex"
    artifact.write_bytes(b"x" * 50)

    value = read_digest(artifact, "crc32")

    assert not value.ok
    assert "unsupported digest algorithm" in str(value)


def test_normalize_digest_algorithm_rejects_unknown() -> None:
    assert normalize_digest_algorithm(" SHA1 ") == "sha1"
    assert normalize_digest_algorithm(None) == "md5"
    with pytest.raises(ConfigurationError):
        normalize_digest_algorithm("whirlpool")


def test_capture_signature_combines_header_and_digest(tmp_path: Path) -> None:
    artifact = tmp_path / "a.dex"
    artifact.write_bytes(b"\xaa" * HEADER_SIZE)

    signature = capture_signature(artifact)

    assert signature.header_hex == "aa" * HEADER_SIZE
    assert signature.content_digest_hex == EMPTY_MD5
    assert signature.to_mapping() == {
        "header_hex": "aa" * HEADER_SIZE,
        "content_digest": EMPTY_MD5,
        "algorithm": "md5",
    }


def test_diagnostic_value_renders_value_or_reason() -> None:
    assert str(DiagnosticValue(value="00ff")) == "00ff"
    assert str(DiagnosticValue.unavailable("gone")) == "unavailable: gone"
