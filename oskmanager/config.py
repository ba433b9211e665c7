import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# --- File Paths ---
DATA_DIR = Path(os.environ.get("OSK_DATA_DIR", str(Path.home() / ".oskmanager")))
STORE_FILE = DATA_DIR / "localStorage.json"
EXPORT_DIR = Path(os.environ.get("OSK_EXPORT_DIR", str(Path.home() / "Downloads")))

# --- Local storage ---
# The whole state is kept as one serialized JSON value under this key.
STORAGE_KEY = "oskMenagerData"

# --- Student text parsing service ---
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_API_BASE = os.environ.get("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")
PARSE_TIMEOUT = float(os.environ.get("PARSE_TIMEOUT", "30"))

if not GEMINI_API_KEY:
    logger.debug("No GEMINI_API_KEY configured. Student text parsing is unavailable.")
