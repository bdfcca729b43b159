import os

SECRET_KEY = os.environ.get("SECRET_KEY", "change-me-in-production")
ALGORITHM = os.environ.get("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = float(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", 60))

# Default to local SQLite for dev/tests; override via env in Docker/Prod
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./taskboard.db")

# Per-project write serialization: total bounded wait, split across attempts
LOCK_TIMEOUT_SECONDS = float(os.environ.get("LOCK_TIMEOUT_SECONDS", 5.0))
LOCK_RETRIES = int(os.environ.get("LOCK_RETRIES", 3))
LOCK_BACKOFF_SECONDS = float(os.environ.get("LOCK_BACKOFF_SECONDS", 0.05))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
