from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Dict

from pydantic import BaseModel, Field, SecretStr, ValidationError

# Limiti upload
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB
MAX_FILES = 10

# Formato chiave: "<identity>.<signature>", header "Authorization: PublicKey <key>"
PUBLIC_KEY_SCHEME = "PublicKey"
TOKEN_SEPARATOR = "."

DEFAULT_PORT = 3000


class ConfigurationError(Exception):
    """Errore fatale di configurazione: il processo deve terminare."""


class Settings(BaseModel):
    port: int = Field(DEFAULT_PORT, description="Porta di ascolto")
    secret_key: SecretStr = Field(..., description="Segreto HMAC per le public key")
    databases_folder_path: Optional[Path] = Field(None, description="Root per POST /db")
    files_folder_path: Optional[Path] = Field(None, description="Root per POST /files")
    home_dir: Optional[str] = Field(None, description="Espansione di '~'")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field("INFO")
    max_file_size: int = Field(MAX_FILE_SIZE)
    max_files: int = Field(MAX_FILES)


def require_env(keys: Iterable[str], environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Legge le variabili obbligatorie; mancanti o vuote -> ConfigurationError."""
    env = os.environ if environ is None else environ
    values: Dict[str, str] = {}
    for key in keys:
        value = env.get(key)
        if not value:
            raise ConfigurationError(f"Missing required environment variable: {key}")
        values[key] = value
    return values


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    from app.utils.utils import parse_path

    env = os.environ if environ is None else environ
    required = require_env(["PORT", "SECRET_KEY"], env)

    db_root = env.get("DATABASES_FOLDER_PATH") or None
    files_root = env.get("FILES_FOLDER_PATH") or None
    if not db_root and not files_root:
        raise ConfigurationError(
            "Missing required environment variable: DATABASES_FOLDER_PATH or FILES_FOLDER_PATH"
        )

    home_dir = env.get("HOME") or None
    log_level = env.get("LOG_LEVEL", "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigurationError(f"Invalid LOG_LEVEL: {log_level}")
    origins = [o.strip() for o in env.get("CORS_ORIGINS", "*").split(",") if o.strip()]

    try:
        return Settings(
            port=required["PORT"],
            secret_key=required["SECRET_KEY"],
            databases_folder_path=parse_path(db_root, home_dir=home_dir) if db_root else None,
            files_folder_path=parse_path(files_root, home_dir=home_dir) if files_root else None,
            home_dir=home_dir,
            cors_origins=origins or ["*"],
            log_level=log_level,
        )
    except ValidationError as exc:
        # i messaggi pydantic non contengono il valore di SecretStr
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
