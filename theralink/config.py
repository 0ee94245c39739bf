import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./theralink.db")

# Auth provider configuration (RS256 ID tokens)
AUTH_PROJECT_ID = os.getenv("AUTH_PROJECT_ID")
AUTH_ISSUER = os.getenv("AUTH_ISSUER", f"https://securetoken.google.com/{AUTH_PROJECT_ID}")
AUTH_CERTS_URL = os.getenv(
    "AUTH_CERTS_URL",
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com",
)
if not AUTH_PROJECT_ID:
    import warnings

    warnings.warn(
        "AUTH_PROJECT_ID not set! Token verification will reject every request",
        RuntimeWarning,
        stacklevel=2,
    )

# S3-compatible object storage
STORAGE_ENDPOINT_URL = os.getenv("STORAGE_ENDPOINT_URL")
STORAGE_ACCESS_KEY_ID = os.getenv("STORAGE_ACCESS_KEY_ID")
STORAGE_SECRET_ACCESS_KEY = os.getenv("STORAGE_SECRET_ACCESS_KEY")
STORAGE_REGION = os.getenv("STORAGE_REGION", "auto")
# Base URL used to build public object URLs: <STORAGE_PUBLIC_URL>/<bucket>/<key>
STORAGE_PUBLIC_URL = os.getenv("STORAGE_PUBLIC_URL", "http://localhost:9000").rstrip("/")
PROFILE_IMAGES_BUCKET = os.getenv("PROFILE_IMAGES_BUCKET", "profile-images")
VERIFICATION_DOCUMENTS_BUCKET = os.getenv(
    "VERIFICATION_DOCUMENTS_BUCKET", "verification-documents"
)

# Frontend base URL for notification action links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Contact form abuse protection (requests per hour per IP)
CONTACT_RATE_LIMIT = int(os.getenv("CONTACT_RATE_LIMIT", "5"))
CONTACT_RATE_WINDOW = int(os.getenv("CONTACT_RATE_WINDOW", "3600"))

# Realtime streams
SSE_HEARTBEAT_SECONDS = float(os.getenv("SSE_HEARTBEAT_SECONDS", "30"))

# Redis (rate limiting). REDIS_URL wins over the individual settings
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"

# HTTP
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", FRONTEND_URL).split(",")
    if origin.strip()
]
SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
