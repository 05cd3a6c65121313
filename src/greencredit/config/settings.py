import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class Settings:
    BASE_DIR = Path(__file__).resolve().parent.parent

    ORACLE_BASE_URL = os.getenv("GREENCREDIT_ORACLE_BASE_URL")
    if not ORACLE_BASE_URL:
        raise RuntimeError("GREENCREDIT_ORACLE_BASE_URL environment variable is required.")

    # Local OpenAI-compatible servers accept any key
    ORACLE_API_KEY = os.getenv("GREENCREDIT_ORACLE_API_KEY", "http")
    # Models the oracle server is known to serve; the configured model must be one of them
    ORACLE_MODELS = [
        name.strip()
        for name in os.getenv("GREENCREDIT_ORACLE_MODELS", "gemma3,gpt-oss").split(",")
        if name.strip()
    ]
    ORACLE_MODEL = os.getenv("GREENCREDIT_ORACLE_MODEL", "gpt-oss")
    if ORACLE_MODEL not in ORACLE_MODELS:
        raise RuntimeError(f"GREENCREDIT_ORACLE_MODEL={ORACLE_MODEL!r} is not in GREENCREDIT_ORACLE_MODELS.")
    ORACLE_TIMEOUT_SECONDS = float(os.getenv("GREENCREDIT_ORACLE_TIMEOUT_SECONDS", "60"))
    ORACLE_MAX_RETRIES = int(os.getenv("GREENCREDIT_ORACLE_MAX_RETRIES", "2"))
    ORACLE_TEMPERATURE = float(os.getenv("GREENCREDIT_ORACLE_TEMPERATURE", "0.2"))

    DEBOUNCE_SECONDS = float(os.getenv("GREENCREDIT_DEBOUNCE_SECONDS", "0.8"))

    LOG_FILE = os.getenv("GREENCREDIT_LOG_FILE", "greencredit_api.log")

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv(
            "GREENCREDIT_CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
        ).split(",")
        if origin.strip()
    ]


settings = Settings()
