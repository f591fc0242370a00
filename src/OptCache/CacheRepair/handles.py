"""Release open artifact handles before a corrupt artifact is deleted.

An open handle pins the file on some platforms and can leave readers looking
at a deleted inode.  The loading subsystem owns the structures that hold
those handles; it exposes them through :class:`HandleSource` so this module
can close a handle without knowing anything else about its owner.
"""

from __future__ import annotations

import os
from typing import Optional, Protocol

from .loaders import ArtifactHandle
from .logsink import LogSink, resolve_sink
from .paths import PathLike

__all__ = ["HandleSource", "close_if_matches"]


class HandleSource(Protocol):
    """Externally owned structure that may carry an open artifact handle."""

    def get_handle(self) -> Optional[ArtifactHandle]:  # pragma: no cover - protocol
        """Return the handle currently held, or ``None``."""


def close_if_matches(
    holder: Optional[HandleSource],
    target_path: PathLike,
    sink: Optional[LogSink] = None,
) -> bool:
    """Close the handle inside ``holder`` if it was opened from ``target_path``.

    Handles recorded under any other path belong to a different live artifact
    and are left open.  Failures while reading the holder or closing the
    handle are logged and swallowed; deletion must go ahead regardless.

    Returns:
        ``True`` when a handle was closed.
    """

    if holder is None:
        return False
    sink = resolve_sink(sink)
    try:
        handle = holder.get_handle()
        if handle is None:
            return False
        handle_path = os.path.abspath(os.fspath(handle.path))
        if handle_path != os.path.abspath(os.fspath(target_path)):
            return False
        handle.close()
    except Exception as exc:
        sink.log(f"cannot release handle for {target_path} from {type(holder).__name__}", exc)
        return False
    sink.log(f"closed open handle for {target_path}")
    return True
