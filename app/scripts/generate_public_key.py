"""
Genera la public key per un utente.

Esecuzione:
    SECRET_KEY=... generate-public-key <username>
Stampa `<username>.<signature>` su stdout.
"""
from __future__ import annotations
import argparse
import sys
from typing import Optional, Sequence

from app.config import ConfigurationError, require_env
from app.services.public_keys import PublicKeySigner


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Generate a public key for a user.")
    ap.add_argument("username", help="Identity to sign (must not contain '.')")
    args = ap.parse_args(argv)

    try:
        secret = require_env(["SECRET_KEY"])["SECRET_KEY"]
        token = PublicKeySigner(secret).issue(args.username)
    except (ConfigurationError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1

    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
