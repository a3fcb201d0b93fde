from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
import typing as t
from pathlib import Path

import typing_extensions as te

StrPath: te.TypeAlias = "str | Path"


@contextlib.contextmanager
def atomic_write(path: StrPath, encoding: str = "utf-8") -> t.Iterator[t.TextIO]:
    """Write to a temporary file next to *path*, then replace *path* with it when the context exits. If an error
    occurs while the context manager is active, the temporary file is deleted instead and the original file (if one
    existed) is not modified. The temporary file lives in the same directory so that the final #os.replace() does
    not cross a filesystem boundary. Permissions of an existing file are carried over.

    Newlines are written exactly as given (no translation), so content read with `newline=""` round-trips."""

    path = Path(path)

    with tempfile.NamedTemporaryFile(
        "w",
        encoding=encoding,
        newline="",
        prefix=path.name + "~",
        suffix=".tmp",
        dir=path.parent,
        delete=False,
    ) as fp:
        try:
            yield fp
            fp.flush()
            os.fsync(fp.fileno())
        except BaseException:
            fp.close()
            os.remove(fp.name)
            raise

    try:
        if path.is_file():
            shutil.copymode(path, fp.name)
        os.replace(fp.name, path)
    except BaseException:
        if os.path.exists(fp.name):
            os.remove(fp.name)
        raise


def read_text(path: StrPath, encoding: str = "utf-8") -> str:
    """Read a file without newline translation, the counterpart to #atomic_write()."""

    with open(path, encoding=encoding, newline="") as fp:
        return fp.read()
