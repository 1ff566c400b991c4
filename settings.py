import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


APP_ENV = os.getenv("APP_ENV", "development")
IS_PROD = APP_ENV == "production"

# Database
MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "Ecommerce")
USER_COLLECTION = os.getenv("USER_COLLECTION", "Userdata")

# JWT Config
DEFAULT_JWT_SECRET = "dev-secret-change"
JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)

# CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
ALLOWED_ORIGINS = [o.strip() for o in FRONTEND_URL.split(",") if o.strip()]

# Session cookie
COOKIE_SECURE = _flag("COOKIE_SECURE", IS_PROD)
COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "none" if IS_PROD else "lax")

ENABLE_DEBUG_ROUTES = _flag("ENABLE_DEBUG_ROUTES", False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", 3000))
