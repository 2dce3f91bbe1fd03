"""
Verifica una public key e stampa l'utente a cui appartiene.

Esecuzione:
    SECRET_KEY=... verify-public-key <key>
"""
from __future__ import annotations
import argparse
import sys
from typing import Optional, Sequence

from app.config import ConfigurationError, require_env
from app.services.public_keys import PublicKeyVerifier


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Verify a public key.")
    ap.add_argument("key", help="Public key in the form <username>.<signature>")
    args = ap.parse_args(argv)

    try:
        secret = require_env(["SECRET_KEY"])["SECRET_KEY"]
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        return 1

    username = PublicKeyVerifier(secret).verify(args.key)
    if username is None:
        print("Invalid key!", file=sys.stderr)
        return 1

    print(username)
    return 0


if __name__ == "__main__":
    sys.exit(main())
