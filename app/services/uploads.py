"""
Pipeline di upload: AwaitAuth -> Authorized -> Validated -> Persisted.

Qualsiasi rifiuto (stato Rejected) e' un UploadRejected con lo status HTTP
da restituire al client.
"""
from __future__ import annotations
import enum
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

from starlette.datastructures import UploadFile

from app.config import MAX_FILE_SIZE, MAX_FILES, PUBLIC_KEY_SCHEME
from app.services.public_keys import PublicKeyVerifier
from app.utils.utils import PathValidationError, StoragePathResolver, atomic_write_stream

log = logging.getLogger(__name__)


class UploadState(str, enum.Enum):
    AWAIT_AUTH = "AwaitAuth"
    AUTHORIZED = "Authorized"
    VALIDATED = "Validated"
    PERSISTED = "Persisted"
    REJECTED = "Rejected"


class UploadRejected(Exception):
    def __init__(self, status_code: int, error: str):
        super().__init__(error)
        self.status_code = status_code
        self.error = error


class PersistenceError(UploadRejected):
    def __init__(self, error: str = "Could not store file"):
        super().__init__(500, error)


def extract_public_key(authorization: Optional[str]) -> Optional[str]:
    """'PublicKey <key>' -> '<key>'; senza schema il valore e' usato cosi' com'e'."""
    if not authorization:
        return None
    value = authorization.strip()
    prefix = PUBLIC_KEY_SCHEME + " "
    if value.startswith(prefix):
        value = value[len(prefix):].strip()
    return value or None


def file_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    fp = upload.file
    pos = fp.tell()
    fp.seek(0, 2)
    size = fp.tell()
    fp.seek(pos)
    return size


class UploadPipeline:
    def __init__(
        self,
        verifier: PublicKeyVerifier,
        resolver: StoragePathResolver,
        max_file_size: int = MAX_FILE_SIZE,
        max_files: int = MAX_FILES,
    ):
        self.verifier = verifier
        self.resolver = resolver
        self.max_file_size = max_file_size
        self.max_files = max_files

    # ------------------------------------------------------------------ auth
    def authorize(self, authorization: Optional[str], claimed_identity: str) -> str:
        key = extract_public_key(authorization)
        if key is None:
            raise UploadRejected(401, "No public key")
        identity = self.verifier.verify(key)
        # la chiave prova solo la firma: l'identity deve coincidere con quella del path
        if identity is None or identity != claimed_identity:
            raise UploadRejected(401, "Invalid public key")
        return identity

    # ------------------------------------------------------------ validation
    def require_file(self, value: Any) -> UploadFile:
        if not isinstance(value, UploadFile):
            raise UploadRejected(400, "file is required")
        return value

    def require_files(self, values: Sequence[Any]) -> List[UploadFile]:
        files = [v for v in values if isinstance(v, UploadFile)]
        if len(files) != len(values) or not 1 <= len(files) <= self.max_files:
            raise UploadRejected(400, f"Between 1 and {self.max_files} files are required")
        return files

    def check_size(self, upload: UploadFile) -> int:
        size = file_size(upload)
        if size > self.max_file_size:
            raise UploadRejected(
                413, f"file too big. Max: {self.max_file_size} Bytes. Received: {size}"
            )
        return size

    # ----------------------------------------------------------- persistence
    def resolve_target(self, *segments: Optional[str]) -> Path:
        try:
            return self.resolver.resolve(*segments)
        except PathValidationError as exc:
            log.info("Rejected upload path: %s", exc)
            raise UploadRejected(400, "Invalid path") from exc

    def persist(self, upload: UploadFile, target: Path) -> str:
        try:
            upload.file.seek(0)
            written = atomic_write_stream(target, upload.file)
        except OSError as exc:
            log.exception("Failed writing %s", self.resolver.relative(target))
            raise PersistenceError() from exc
        rel = self.resolver.relative(target)
        log.info("Stored %s (%d bytes)", rel, written)
        return rel

    # ----------------------------------------------------------- orchestration
    def run_single(
        self,
        authorization: Optional[str],
        claimed_identity: str,
        value: Any,
        *segments: Optional[str],
        file_name: Optional[str] = None,
    ) -> str:
        """
        Upload di un singolo file sotto `segments` + nome file.
        `file_name` sovrascrive il nome originale dell'upload.
        """
        state = UploadState.AWAIT_AUTH
        try:
            identity = self.authorize(authorization, claimed_identity)
            state = self._advance(state, UploadState.AUTHORIZED, identity)

            upload = self.require_file(value)
            self.check_size(upload)
            name = _pick_name(file_name, upload)
            target = self.resolve_target(*segments, name)
            state = self._advance(state, UploadState.VALIDATED, identity)

            rel = self.persist(upload, target)
            self._advance(state, UploadState.PERSISTED, identity)
            return rel
        except UploadRejected as exc:
            self._reject(state, claimed_identity, exc)
            raise

    def run_batch(
        self,
        authorization: Optional[str],
        claimed_identity: str,
        values: Sequence[Any],
        *segments: Optional[str],
    ) -> List[str]:
        """
        Upload di 1..max_files file. Tutti i file sono validati prima di scrivere;
        la scrittura e' sequenziale e senza rollback: se un file fallisce
        quelli gia' scritti restano al loro posto.
        """
        state = UploadState.AWAIT_AUTH
        try:
            identity = self.authorize(authorization, claimed_identity)
            state = self._advance(state, UploadState.AUTHORIZED, identity)

            uploads = self.require_files(values)
            targets = []
            for upload in uploads:
                self.check_size(upload)
                targets.append(self.resolve_target(*segments, _pick_name(None, upload)))
            state = self._advance(state, UploadState.VALIDATED, identity)

            written = [
                self.persist(upload, target)
                for upload, target in zip(uploads, targets)
            ]
            self._advance(state, UploadState.PERSISTED, identity)
            return written
        except UploadRejected as exc:
            self._reject(state, claimed_identity, exc)
            raise

    # ----------------------------------------------------------------- utils
    @staticmethod
    def _advance(current: UploadState, new: UploadState, identity: str) -> UploadState:
        log.debug("Upload for %r: %s -> %s", identity, current.value, new.value)
        return new

    @staticmethod
    def _reject(state: UploadState, identity: str, exc: UploadRejected) -> None:
        log.info(
            "Upload for %r: %s -> %s (%d %s)",
            identity, state.value, UploadState.REJECTED.value, exc.status_code, exc.error,
        )


def _pick_name(override: Optional[str], upload: UploadFile) -> str:
    name = (override or "").strip() or (upload.filename or "").strip()
    if not name:
        raise UploadRejected(400, "file name is required")
    return name
