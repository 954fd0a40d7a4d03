"""Atomic file publish.

Readers may enumerate the storage directories while the poll loop writes.
Every record is written to a temporary sibling and then moved into place
with ``os.replace``, so a reader sees either the complete old file or the
complete new one.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

TEMP_SUFFIX = ".tmp"


def write_atomic(path: Path, text: str) -> None:
    """Write *text* to *path* via write-temp-then-replace.

    The temporary file lives in the same directory (same filesystem) and
    ends in ``.tmp`` so directory listings filtering on ``.json`` skip it.

    Raises:
        OSError: if the directory is missing or not writable.
    """
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=TEMP_SUFFIX,
        dir=path.parent,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
