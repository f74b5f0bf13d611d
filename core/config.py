import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=False)

# Application environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
DEBUG = ENVIRONMENT == "development"

# Application settings
APP_NAME = "Chat Engine API"
APP_VERSION = "1.0.0"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
APP_LOG_PATH = os.getenv("APP_LOG_PATH", "")

# Database settings
DATABASE_URL = os.getenv("DATABASE_URL")
TESTING = os.getenv("TESTING", "false").lower() == "true"
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
DB_POOL_TIMEOUT_SECONDS = int(os.getenv("DB_POOL_TIMEOUT_SECONDS", "30"))
DB_POOL_RECYCLE_SECONDS = int(os.getenv("DB_POOL_RECYCLE_SECONDS", "300"))
SLOW_DB_QUERY_THRESHOLD_MS = float(os.getenv("SLOW_DB_QUERY_THRESHOLD_MS", "200"))

# Identifier settings
ID_GENERATION_MAX_ATTEMPTS = int(os.getenv("ID_GENERATION_MAX_ATTEMPTS", "10"))

# User settings
USERNAME_PATTERN = r"^[a-zA-Z0-9_-]{3,16}$"
USER_SEARCH_LIMIT = int(os.getenv("USER_SEARCH_LIMIT", "1000"))

# Group settings
GROUP_NAME_PATTERN = r"^[a-zA-Z0-9_\s-]{3,30}$"

# Message settings
MESSAGE_MAX_LENGTH = int(os.getenv("MESSAGE_MAX_LENGTH", "4000"))
MESSAGE_SANITIZE_ENABLED = os.getenv("MESSAGE_SANITIZE_ENABLED", "true").lower() == "true"
CONVERSATION_MESSAGES_PAGE_LIMIT = int(os.getenv("CONVERSATION_MESSAGES_PAGE_LIMIT", "50"))
REACTION_MAX_GRAPHEMES = int(os.getenv("REACTION_MAX_GRAPHEMES", "2"))  # Up to this many graphemes is a reaction

# Media settings
MEDIA_MIN_BYTES = int(os.getenv("MEDIA_MIN_BYTES", "100"))
MEDIA_MAX_MB = int(os.getenv("MEDIA_MAX_MB", "10"))
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif")
