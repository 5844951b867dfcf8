import os
from pathlib import Path

from dotenv import load_dotenv

# Explicitly load .env from project root (parent of linkshortener/)
ENV_PATH = Path(__file__).parent.parent / ".env"
load_dotenv(ENV_PATH)

ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

PORT = int(os.getenv("PORT", 3000))
BASE_URL = (os.getenv("BASE_URL") or f"http://localhost:{PORT}").rstrip("/")

# Shortening endpoint limiter
RATE_LIMIT_WINDOW_MS = int(os.getenv("RATE_LIMIT_WINDOW_MS", 60000))
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", 10))

# General /api limiter (more lenient)
API_RATE_LIMIT_WINDOW_MS = int(os.getenv("API_RATE_LIMIT_WINDOW_MS", 60000))
API_RATE_LIMIT_MAX_REQUESTS = int(os.getenv("API_RATE_LIMIT_MAX_REQUESTS", 60))

# Path to a MaxMind GeoLite2-City .mmdb file; geography is "Unknown" without it
GEOIP_DATABASE = os.getenv("GEOIP_DATABASE") or None

CORS_ORIGINS = ["*"] if ENVIRONMENT == "dev" else [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", BASE_URL).split(",")
    if origin.strip()
]

# Required when ENVIRONMENT=prod; dev always uses the local SQLite file
DATABASE_URL = os.getenv("DATABASE_URL")
