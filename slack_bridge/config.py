"""Application configuration settings"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


class Config:
    # Slack
    SLACK_BOT_TOKEN = os.getenv("SLACK_BOT_TOKEN", "").strip()
    SLACK_DEFAULT_CHANNEL = os.getenv("SLACK_DEFAULT_CHANNEL", "#general")
    SLACK_API_URL = os.getenv("SLACK_API_URL", "https://slack.com/api")
    SLACK_API_TIMEOUT = int(os.getenv("SLACK_API_TIMEOUT", "20"))

    # Server
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "5000"))
    DEBUG = _env_bool("DEBUG")
    TESTING = _env_bool("TESTING")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE") or None
    LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
