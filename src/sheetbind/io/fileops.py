"""File operations: fingerprinting, backup, atomic write, write lock."""

from __future__ import annotations

import hashlib
import os
import shutil
import tempfile
import time
from datetime import datetime, timezone
from io import TextIOWrapper
from pathlib import Path

import portalocker

LOCK_SUFFIX = ".sheetbind.lock"


def fingerprint(path: str | Path) -> str:
    """SHA-256 of a file's bytes, prefixed with the algorithm name."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return f"sha256:{h.hexdigest()}"


def backup(path: str | Path) -> str:
    """Copy ``path`` next to itself with a UTC timestamp; return the copy's path."""
    path = Path(path)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    copy = path.with_name(f"{path.stem}.{stamp}.bak{path.suffix}")
    shutil.copy2(path, copy)
    return str(copy)


def atomic_write(target: str | Path, data: bytes) -> None:
    """Write ``data`` to a sibling temp file, then move it over ``target``."""
    target = Path(target)
    fd, tmp_path = tempfile.mkstemp(dir=target.parent, suffix=target.suffix, prefix=".sheetbind_")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        shutil.move(tmp_path, target)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class WorkbookLock:
    """Exclusive ``<file>.sheetbind.lock`` sidecar held across read-modify-write.

    With ``timeout=0`` acquisition fails at once with
    ``portalocker.LockException`` when another process holds the lock;
    otherwise it polls until the deadline.  A crashed holder leaves an
    unlocked sidecar behind, which the next writer simply reuses.
    """

    def __init__(self, workbook_path: str | Path, *, timeout: float = 0) -> None:
        self.workbook_path = Path(workbook_path).resolve()
        self.timeout = timeout
        self.lock_path = self.workbook_path.with_name(self.workbook_path.name + LOCK_SUFFIX)
        self._handle: TextIOWrapper | None = None

    def _try_lock(self) -> None:
        portalocker.lock(self._handle, portalocker.LOCK_EX | portalocker.LOCK_NB)

    def __enter__(self) -> "WorkbookLock":
        self._handle = open(self.lock_path, "a+")  # noqa: SIM115
        deadline = time.monotonic() + self.timeout
        try:
            while True:
                try:
                    self._try_lock()
                    break
                except portalocker.LockException:
                    if time.monotonic() >= deadline:
                        raise
                    time.sleep(0.05)
        except portalocker.LockException:
            self._handle.close()
            self._handle = None
            raise

        self._handle.seek(0)
        self._handle.truncate()
        self._handle.write(f"pid={os.getpid()}\ntime={datetime.now(timezone.utc).isoformat()}\n")
        self._handle.flush()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        if self._handle is not None:
            try:
                portalocker.unlock(self._handle)
            finally:
                self._handle.close()
                self._handle = None


def read_text_safe(path: str | Path) -> str:
    """Read UTF-8 text, dropping a leading BOM if one is present."""
    return Path(path).read_text(encoding="utf-8-sig")
