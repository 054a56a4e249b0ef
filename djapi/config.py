"""
djapi/config.py
---------------
Ambient settings. Loads environment variables (and a `.env` file when
present) and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("DJAPI_LOG_LEVEL", "INFO").upper()

# ── Connection file ───────────────────────────────────────
DEFAULT_CONNECT_PATH: str = os.getenv("DJAPI_CONNECT_PATH", "djapi_connect")
