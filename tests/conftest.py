"""Fixture condivise: root di storage su tmp_path e app costruita con Settings espliciti."""
import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app
from app.services.public_keys import PublicKeySigner


@pytest.fixture
def secret():
    return "topsecret"


@pytest.fixture
def signer(secret):
    return PublicKeySigner(secret)


@pytest.fixture
def db_root(tmp_path):
    root = tmp_path / "databases"
    root.mkdir()
    return root


@pytest.fixture
def files_root(tmp_path):
    root = tmp_path / "files"
    root.mkdir()
    return root


@pytest.fixture
def settings(secret, db_root, files_root):
    return Settings(
        port=3000,
        secret_key=secret,
        databases_folder_path=db_root,
        files_folder_path=files_root,
    )


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings))


@pytest.fixture
def alice_auth(signer):
    return {"Authorization": f"PublicKey {signer.issue('alice')}"}
