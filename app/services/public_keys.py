"""
Public key: "<identity>.<signature>".

La firma e' HMAC-SHA256(secret, identity) in base64url senza padding.
Nessuna scadenza, nessun versioning: la stessa coppia (identity, secret)
produce sempre la stessa chiave.
"""
from __future__ import annotations
import base64
import hashlib
import hmac
import logging
from typing import NamedTuple, Optional, Union

from app.config import TOKEN_SEPARATOR

log = logging.getLogger(__name__)

Secret = Union[str, bytes]


class Token(NamedTuple):
    identity: str
    signature: str

    def __str__(self) -> str:
        return f"{self.identity}{TOKEN_SEPARATOR}{self.signature}"


def _key(secret: Secret) -> bytes:
    return secret if isinstance(secret, bytes) else secret.encode("utf-8")


# ============================================================================
# Codec
# ============================================================================
def encode(identity: str, signature: str) -> Token:
    return Token(identity, signature)


def decode(raw: str) -> Optional[Token]:
    """Divide sulla PRIMA occorrenza del separatore; None se malformato."""
    identity, sep, signature = raw.partition(TOKEN_SEPARATOR)
    if not sep or not identity or not signature:
        return None
    return Token(identity, signature)


# ============================================================================
# Firma / verifica
# ============================================================================
def sign(identity: str, secret: Secret) -> str:
    digest = hmac.new(_key(secret), identity.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def verify(raw: str, secret: Secret) -> Optional[str]:
    """Ritorna l'identity se la chiave e' valida, altrimenti None. Non solleva."""
    token = decode(raw)
    if token is None:
        log.debug("Rejected public key: malformed")
        return None
    try:
        presented = token.signature.encode("utf-8")
        expected = sign(token.identity, secret).encode("ascii")
    except UnicodeError:
        log.debug("Rejected public key: undecodable")
        return None
    # confronto a tempo costante
    if not hmac.compare_digest(presented, expected):
        log.debug("Rejected public key for identity %r: signature mismatch", token.identity)
        return None
    return token.identity


class PublicKeySigner:
    def __init__(self, secret: Secret):
        self._secret = _key(secret)

    def sign(self, identity: str) -> str:
        return sign(identity, self._secret)

    def issue(self, identity: str) -> Token:
        """Emette la chiave per `identity`; il separatore non e' ammesso nell'identity."""
        if not identity:
            raise ValueError("identity must not be empty")
        if TOKEN_SEPARATOR in identity:
            raise ValueError(f"identity must not contain {TOKEN_SEPARATOR!r}")
        return encode(identity, self.sign(identity))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(secret=***)"


class PublicKeyVerifier:
    def __init__(self, secret: Secret):
        self._secret = _key(secret)

    def verify(self, raw: str) -> Optional[str]:
        return verify(raw, self._secret)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(secret=***)"
