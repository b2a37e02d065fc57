import pytest
import fitz  # PyMuPDF
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from document_service.app import models
from document_service.app.main import app, get_db

TEST_USERS = "alice:alice-pass,bob:bob-pass"


@pytest.fixture(autouse=True)
def service_env(monkeypatch, tmp_path):
    """Development defaults, local uploads in a temp dir, fake AWS creds for moto."""
    monkeypatch.setenv("APP_ENV", "development")
    monkeypatch.setenv("API_USERS", TEST_USERS)
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.delenv("S3_BUCKET", raising=False)
    monkeypatch.delenv("VERCEL", raising=False)
    monkeypatch.delenv("EPHEMERAL_FILESYSTEM", raising=False)
    monkeypatch.delenv("LOCALSTACK_ENDPOINT", raising=False)
    monkeypatch.delenv("S3_PUBLIC_BASE_URL", raising=False)
    monkeypatch.delenv("EXTRACTION_TIMEOUT_SECONDS", raising=False)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    return tmp_path


@pytest.fixture
def db_session():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
    )
    models.Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        models.Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return ("alice", "alice-pass")


@pytest.fixture
def bob():
    return ("bob", "bob-pass")


def build_pdf(text="Quarterly report: revenue grew in every region.", pages=1):
    """Create a real PDF with a text layer"""
    doc = fitz.open()
    for _ in range(pages):
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def sample_pdf():
    return build_pdf()
