import itertools
import os
import tempfile
from pathlib import Path

import pytest

# Point the app at a throwaway SQLite file before `app.main` is imported.
_TMP_DIR = Path(tempfile.mkdtemp(prefix="studyplanner-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ["AUTH_RATE_LIMIT_PER_MIN"] = "1000"

from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402

_emails = itertools.count(1)
PASSWORD = "correct-horse-battery"


@pytest.fixture(scope="session")
def client():
    return TestClient(app)


@pytest.fixture
def make_user(client):
    """Register and log in a fresh user; return its auth headers.

    Every test gets its own users, so records left by other tests are
    never visible to them.
    """
    def _make(email=None, password=PASSWORD):
        email = email or f"student{next(_emails)}@studyplanner.io"
        r = client.post('/auth/register', json={'email': email, 'password': password})
        assert r.status_code == 201, r.text
        login = client.post('/auth/login', json={'email': email, 'password': password})
        assert login.status_code == 200, login.text
        return {'Authorization': f"Bearer {login.json()['access_token']}"}
    return _make
