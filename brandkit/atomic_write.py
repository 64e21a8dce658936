"""Write files through a sibling temp file and an atomic rename."""
from __future__ import annotations

import os
import tempfile


def write_atomic(path: str, data: bytes) -> str:
    """Write ``data`` to ``path`` so readers never observe a partial file.

    The temp file lives in the destination directory (same filesystem, so
    ``os.replace`` is atomic) and is removed if anything fails before the rename.
    """
    directory = os.path.dirname(os.path.abspath(path))
    name = os.path.basename(path)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "wb") as fp:
            fp.write(data)
            fp.flush()
            os.fsync(fp.fileno())
        # mkstemp creates 0600 files; published assets must be world-readable.
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise
    return path


def write_text_atomic(path: str, text: str) -> str:
    return write_atomic(path, text.encode("utf-8"))


__all__ = ["write_atomic", "write_text_atomic"]
