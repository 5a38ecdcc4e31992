import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./quizroom.db")
SCHEMA_SEARCH_PATH = os.getenv("SCHEMA_SEARCH_PATH")
SQL_ECHO = os.getenv("SQL_ECHO", "").lower() in ("1", "true", "yes")

# JWT settings for fastapi-users
SECRET = os.getenv("SECRET", "change-me-in-production")
JWT_LIFETIME_SECONDS = int(os.getenv("JWT_LIFETIME_SECONDS", "3600"))

# NOTE: exact origins used by the frontend dev server (no trailing slash)
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
    ).split(",")
    if origin.strip()
]

EXAM_CODE_MAX_LENGTH = int(os.getenv("EXAM_CODE_MAX_LENGTH", "32"))
