"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_REASON_LENGTH = 500
MAX_NOTES_LENGTH = 1000

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes
SQLITE_BUSY_TIMEOUT_SECONDS = 30  # How long a writer waits for the SQLite write lock

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # React dev server (Vite) - localhost
    FRONTEND_URL,  # Production URL if FRONTEND_URL is set accordingly
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Scheduling bounds
MIN_SLOT_STEP_MINUTES = 5
MAX_SLOT_STEP_MINUTES = 60
MAX_SUGGESTION_HORIZON_DAYS = 60

# User-facing conflict sentence (surfaced verbatim to callers)
SLOT_UNAVAILABLE_MESSAGE = "This time slot is not available."

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
