import os
from pathlib import Path

from dotenv import load_dotenv

# switch environments with DATAROOM_ENV (loads .env.dev, .env.prod, ...)
env = os.getenv("DATAROOM_ENV", "dev")
load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), f".env.{env}"))

# Mongo (document metadata + accounts)
MONGO_URI = os.getenv("MONGO_URI", "mongodb://mongo:27017")
MONGO_DB = os.getenv("MONGO_DB", "dataroom_dev")

# Object storage
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "azure").lower()
AZURE_BLOB_CONN_STR = os.getenv("AZURE_BLOB_CONN_STR", "")
AZURE_CONTAINER_DOCUMENTS = os.getenv("AZURE_CONTAINER_DOCUMENTS", "dataroom-documents")
S3_ENDPOINT = os.getenv("S3_ENDPOINT", "http://minio:9000")
S3_ACCESS_KEY = os.getenv("S3_ACCESS_KEY", "admin")
S3_SECRET_KEY = os.getenv("S3_SECRET_KEY", "adminadmin")
S3_BUCKET_DOCUMENTS = os.getenv("S3_BUCKET_DOCUMENTS", "dataroom-documents")

# Identity provider
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
JWT_ALG = os.getenv("JWT_ALG", "HS256")
ACCESS_TOKEN_EXPIRE_MIN = int(os.getenv("ACCESS_TOKEN_EXPIRE_MIN", "30"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
REFRESH_TOKEN_COOKIE = os.getenv("REFRESH_TOKEN_COOKIE", "dataroom_refresh_token")
COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"  # true in production (HTTPS)
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")

# Signed cookie holding per-link gate state
SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY", "super-secret")

# Sharing
PUBLIC_ORIGIN = os.getenv("PUBLIC_ORIGIN", "")  # empty -> request base url
UPLOAD_SOFT_LIMIT_MB = int(os.getenv("UPLOAD_SOFT_LIMIT_MB", "30"))  # shown in copy, not enforced
GATE_TIMEZONE = os.getenv("GATE_TIMEZONE", "UTC")

TEMPLATES_DIR = str(Path(__file__).parent / "templates")
