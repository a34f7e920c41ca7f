"""
Environment configuration and logging setup.
"""
import logging
import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Gemini
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_API_MODEL = os.getenv("GEMINI_API_MODEL") or "gemini-2.5-flash"
SOLVER_TEMPERATURE = _env_float("SOLVER_TEMPERATURE", 0.1)

# Local catalog (chromadb directory)
CATALOG_PATH = os.getenv("CATALOG_PATH") or "./catalog_db"

# HTTP
CORS_ORIGINS = [
    origin.strip()
    for origin in (os.getenv("CORS_ORIGINS") or "*").split(",")
    if origin.strip()
]

# Logging
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE")


def setup_logging(level: str = LOG_LEVEL, log_file: str = LOG_FILE) -> logging.Logger:
    """Configure the package logger with a console handler and an optional file handler."""
    logger = logging.getLogger("solveai")
    logger.setLevel(getattr(logging, level, logging.INFO))

    # Avoid duplicate handlers on reload
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
