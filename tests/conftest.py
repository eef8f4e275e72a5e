import os
import shutil
import sys
import tempfile
from pathlib import Path

import pytest

# Settings are read at import time, so the environment must be in place first
_TMP = tempfile.mkdtemp(prefix="quote-intake-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP}/test.sqlite"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["ADMIN_EMAIL"] = "Admin@SmileClinic.com"
os.environ["ADMIN_PASSWORD"] = "s3cret-Passw0rd"
os.environ["JWT_SECRET"] = "test-secret"

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from fastapi.testclient import TestClient  # noqa: E402

from quote_intake.core.config import settings  # noqa: E402
from quote_intake.db.base import Base  # noqa: E402
from quote_intake.db.session import SessionLocal, engine  # noqa: E402
from quote_intake.main import app  # noqa: E402
from quote_intake.security.rate_limiter import get_rate_limiter  # noqa: E402

ADMIN_EMAIL = os.environ["ADMIN_EMAIL"]
ADMIN_PASSWORD = os.environ["ADMIN_PASSWORD"]


@pytest.fixture(autouse=True)
def _clean_state():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    shutil.rmtree(settings.UPLOAD_DIR, ignore_errors=True)
    get_rate_limiter().reset()
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin_token(client):
    resp = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


@pytest.fixture
def auth_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


def submit(client, files=None, **fields):
    data = {"name": "Jane Doe", "email": "jane@example.com", "phone": "123456"}
    data.update(fields)
    return client.post("/api/quotes/multipart", data=data, files=files)


def uploaded_names():
    if not os.path.isdir(settings.UPLOAD_DIR):
        return []
    return sorted(os.listdir(settings.UPLOAD_DIR))
