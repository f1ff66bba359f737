import os
from pathlib import Path

from dotenv import load_dotenv


# Load env vars from a ".env" file if present
load_dotenv()

APP_ENV = os.getenv("APP_ENV", "dev")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Database settings
DB_URL = os.getenv("DB_URL", "sqlite+pysqlite:///:memory:")

# Session settings
SESSION_SECRET = os.getenv("SESSION_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
SESSION_TTL_MIN = int(os.getenv("SESSION_TTL_MIN", "1440"))
REMEMBER_ME_TTL_DAYS = int(os.getenv("REMEMBER_ME_TTL_DAYS", "30"))
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "cinerate_session")
COOKIE_SECURE = APP_ENV == "prod"

# Cost factor of the bcrypt password hash
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Max number of pending live events per websocket connection
LIVE_QUEUE_SIZE = int(os.getenv("LIVE_QUEUE_SIZE", "100"))

SEED_MOVIES_PATH = os.getenv(
    "SEED_MOVIES_PATH",
    str(Path(__file__).parent / "db" / "data" / "movies.json"),
)
