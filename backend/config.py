import logging
import os

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.environ.get("DATABASE_URL")

# Compliance
DEFAULT_WARNING_THRESHOLD_DAYS = 30
EXPIRATION_WARNING_DAYS = int(os.environ.get("EXPIRATION_WARNING_DAYS", DEFAULT_WARNING_THRESHOLD_DAYS))

# CORS
ALLOWED_ORIGINS = [o.strip() for o in os.environ.get("ALLOWED_ORIGINS", "*").split(",") if o.strip()]

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def configure_logging():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
