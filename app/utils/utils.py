from __future__ import annotations
import os
import shutil
import tempfile
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import BinaryIO, Optional

from app.config import ConfigurationError

HOME_MARKER = "~"


class PathValidationError(ValueError):
    """Segmento di path non accettabile (traversal, separatori, path assoluti)."""


# ============================================================================
# Path configurati (fidati)
# ============================================================================
def parse_path(*segments: str, home_dir: Optional[str] = None) -> Path:
    """
    Unisce i segmenti espandendo un '~' iniziale nella home configurata.
    I segmenti vuoti vengono ignorati (sottocartella opzionale).
    Solleva ConfigurationError se serve '~' ma la home non e' impostata.
    """
    parts = [s for s in segments if s]
    if not parts:
        raise ValueError("At least one path segment is required")

    head = parts[0]
    if head == HOME_MARKER or head.startswith(HOME_MARKER + "/"):
        if not home_dir:
            raise ConfigurationError("HomeDir not resolved")
        parts[0] = home_dir + head[len(HOME_MARKER):]

    return Path(*parts)


def dir_exists(path: Path) -> bool:
    """
    True se il path esiste ed e' una directory.
    Permessi negati e path inesistenti sono indistinguibili: usare solo all'avvio.
    """
    try:
        return Path(path).is_dir()
    except OSError:
        return False


# ============================================================================
# Validazione segmenti (non fidati)
# ============================================================================
def sanitize_segment(raw: str, what: str) -> str:
    s = raw.strip()
    if not s:
        raise PathValidationError(f"Empty {what}")
    if "\0" in s:
        raise PathValidationError(f"Null byte in {what}")
    if "/" in s or "\\" in s:
        raise PathValidationError(f"Path separator in {what}")
    if s in (".", ".."):
        raise PathValidationError(f"Path traversal in {what}")
    if PurePosixPath(s).is_absolute() or PureWindowsPath(s).drive:
        raise PathValidationError(f"Absolute path in {what}")
    return s


class StoragePathResolver:
    """Costruisce path sotto una root fissa; nessun risultato puo' uscirne."""

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def resolve(self, *segments: Optional[str], what: str = "path segment") -> Path:
        parts = [sanitize_segment(s, what) for s in segments if s and s.strip()]
        if not parts:
            raise PathValidationError(f"Missing {what}")
        target = self.root.joinpath(*parts).resolve()
        # ultimo controllo: symlink o altro che porti fuori dalla root
        if target != self.root and self.root not in target.parents:
            raise PathValidationError(f"{what} escapes storage root")
        return target

    def relative(self, path: Path) -> str:
        return Path(path).relative_to(self.root).as_posix()


# ============================================================================
# FS helpers
# ============================================================================
def ensure_dir(p: Path) -> Path:
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_stream(path: Path, src: BinaryIO) -> int:
    """
    Copia `src` su `path` in modo atomico:
    - tmp nella STESSA directory del file finale
    - sostituzione con os.replace (sovrascrive, last-writer-wins)
    Ritorna i byte scritti.
    """
    parent = ensure_dir(path.parent)
    fd, tmp_path = tempfile.mkstemp(dir=str(parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fp:
            shutil.copyfileobj(src, fp)
            written = fp.tell()
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return written
