import os
import logging

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Supabase
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_SERVICE_KEY")

# JWT
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    if ENVIRONMENT == "production":
        raise RuntimeError("JWT_SECRET environment variable is required in production")
    logger.warning("JWT_SECRET not set, using an insecure development secret")
    JWT_SECRET = "dev-secret-key-unsafe-for-production"
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "168"))

# Session cookie
AUTH_COOKIE_NAME = os.getenv("AUTH_COOKIE_NAME", "auth-token")
COOKIE_SECURE = os.getenv("COOKIE_SECURE", str(ENVIRONMENT == "production")).lower() == "true"

# Hashing
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

# Scheduling rules
MAX_RESERVATIONS_PER_MONTH = int(os.getenv("MAX_RESERVATIONS_PER_MONTH", "3"))

# CORS
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    if origin.strip()
]
