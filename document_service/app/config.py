import os
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

load_dotenv()

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_users(raw: str) -> Dict[str, str]:
    # "alice:secret,bob:hunter2"
    users = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry or ":" not in entry:
            continue
        username, password = entry.split(":", 1)
        users[username.strip()] = password
    return users


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    app_env: str = "development"
    database_url: str = "sqlite:///./documents.db"

    aws_region: str = "us-east-1"
    localstack_endpoint: Optional[str] = None
    s3_bucket: Optional[str] = None
    s3_folder: str = "documents"
    s3_public_base_url: Optional[str] = None

    upload_dir: str = "public/uploads/documents"
    upload_url_prefix: str = "/uploads/documents"
    ephemeral_filesystem: bool = False

    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    extraction_timeout_seconds: Optional[float] = None

    api_users: Dict[str, str] = {"admin": "password"}

    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def cloud_storage_configured(self) -> bool:
        return bool(self.s3_bucket)


def get_settings() -> Settings:
    """
    Build settings from the current environment.

    Not cached: every request sees the environment as it is right now, so the
    storage backend can be switched without restarting the process.
    """
    app_env = os.getenv("APP_ENV", "development").strip().lower()
    serverless = os.getenv("VERCEL") == "1" or app_env == "production"
    timeout = os.getenv("EXTRACTION_TIMEOUT_SECONDS")

    return Settings(
        app_env=app_env,
        database_url=os.getenv("DATABASE_URL", "sqlite:///./documents.db"),
        aws_region=os.getenv("AWS_REGION", "us-east-1"),
        localstack_endpoint=os.getenv("LOCALSTACK_ENDPOINT") or None,
        s3_bucket=os.getenv("S3_BUCKET") or None,
        s3_folder=os.getenv("S3_FOLDER", "documents").strip("/"),
        s3_public_base_url=os.getenv("S3_PUBLIC_BASE_URL") or None,
        upload_dir=os.getenv("UPLOAD_DIR", "public/uploads/documents"),
        upload_url_prefix=os.getenv("UPLOAD_URL_PREFIX", "/uploads/documents").rstrip("/"),
        ephemeral_filesystem=_env_flag("EPHEMERAL_FILESYSTEM", default=serverless),
        max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)),
        extraction_timeout_seconds=float(timeout) if timeout else None,
        api_users=_parse_users(os.getenv("API_USERS", "admin:password")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE") or None,
    )
