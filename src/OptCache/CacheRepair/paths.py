"""Cache path derivation for optimized artifacts."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

__all__ = ["OPTIMIZED_SUFFIX", "derive_path"]

OPTIMIZED_SUFFIX = ".dex"

PathLike = Union[str, os.PathLike]


def derive_path(
    source_archive: PathLike,
    cache_dir: PathLike,
    suffix: str = OPTIMIZED_SUFFIX,
) -> Path:
    """Return the optimized-artifact path for ``source_archive`` inside ``cache_dir``.

    The file-name component keeps its stem and has its final extension
    replaced by ``suffix``; names without an extension get ``suffix``
    appended, and names already ending in ``suffix`` are kept as-is.

    Examples:
        >>> derive_path("app.apk.classes2.zip", "/cache").as_posix()
        '/cache/app.apk.classes2.dex'
        >>> derive_path("/data/classes", "/cache").as_posix()
        '/cache/classes.dex'
    """

    file_name = os.path.basename(os.fspath(source_archive))
    if not file_name.endswith(suffix):
        last_dot = file_name.rfind(".")
        if last_dot < 0:
            file_name += suffix
        else:
            file_name = file_name[:last_dot] + suffix
    return Path(os.fspath(cache_dir)) / file_name
