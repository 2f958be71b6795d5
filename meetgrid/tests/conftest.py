import os
import sys
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

import pytest
from fastapi.testclient import TestClient

import meetgrid.main as main
from meetgrid.config import clear_settings_cache


@pytest.fixture
def client(monkeypatch, tmp_path):
    monkeypatch.setenv("STORE_BACKEND", "file")
    monkeypatch.setenv("STORE_DATA_DIR", str(tmp_path))
    clear_settings_cache()

    with TestClient(main.app) as c:
        yield c

    clear_settings_cache()
