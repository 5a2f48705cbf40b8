"""
ProAcademics Configuration
Environment settings and platform constants
"""

import os
from dotenv import load_dotenv

load_dotenv()

# MongoDB
MONGODB_URI = os.getenv("MONGODB_URI", "")
DB_NAME = os.getenv("DB_NAME", "proacademics")

# Auth
NEXTAUTH_SECRET = os.getenv("NEXTAUTH_SECRET", "")
JWT_ALGORITHM = "HS256"
SESSION_MAX_AGE_DAYS = 30
BCRYPT_ROUNDS = 12
PASSWORD_MIN_LENGTH = 6
# bcrypt only accepts 72 bytes of input
PASSWORD_MAX_BYTES = 72
ADMIN_SETUP_KEY = os.getenv("ADMIN_SETUP_KEY", "")

# External services
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
LLM_TIMEOUT_SECONDS = 60

ZOOM_API_KEY = os.getenv("ZOOM_API_KEY", "")
ZOOM_API_SECRET = os.getenv("ZOOM_API_SECRET", "")

# Cron endpoints are open when unset
CRON_SECRET = os.getenv("CRON_SECRET", "")

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ==================== GAMIFICATION ====================

XP_REWARDS = {
    "EASY_QUESTION": 10,
    "MEDIUM_QUESTION": 20,
    "HARD_QUESTION": 30,
    "LESSON_COMPLETION": 50,
    "ASSIGNMENT_COMPLETION": 100,
    "DAILY_LOGIN": 5,
}

XP_PER_LEVEL = 200
CWA_WINDOW = 50
LEX_SESSION_SIZE = 20


def is_production() -> bool:
    return ENVIRONMENT == "production"
