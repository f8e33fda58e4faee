"""Application configuration — environment variables and derived constants.

Loads ``MAX_BOT_TOKEN``, ``MAX_BASE_URL``, ``MAX_TIMEOUT``, ``MAX_VERIFY_TLS``
and ``MAX_POLL_LIMIT`` from the environment via ``python-dotenv``.  All values
are resolved at import time so other modules can ``from config import …``
without repeated lookups.  The SDK itself never reads the environment; the
bot layer passes these values to :class:`max_sdk.MaxClient`.
"""

# ── stdlib ───────────────────────────────────────────────────────────────────
import os

# ── third-party ──────────────────────────────────────────────────────────────
from dotenv import load_dotenv

# ── core ─────────────────────────────────────────────────────────────────────
from core.logger import MaxBotLogger

# ── Environment bootstrap ────────────────────────────────────────────────────
load_dotenv()

logger = MaxBotLogger.get_logger()


# ── Helper functions (private) ───────────────────────────────────────────────


def _parse_bool(raw: str | None, default: bool) -> bool:
    """Interpret ``1/true/yes/on`` and ``0/false/no/off`` (case-insensitive)."""
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    logger.warning("Unrecognised boolean value, using default", extra={"raw_value": raw, "default": default})
    return default


def _parse_number(raw: str | None, default: float) -> float:
    """Parse a positive number, falling back to *default* on bad input."""
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Unrecognised numeric value, using default", extra={"raw_value": raw, "default": default})
        return default
    return value if value > 0 else default


# ── Public constants ─────────────────────────────────────────────────────────

BOT_TOKEN: str | None = os.environ.get("MAX_BOT_TOKEN")
BASE_URL: str = os.environ.get("MAX_BASE_URL") or "https://botapi.max.ru"
REQUEST_TIMEOUT: float = _parse_number(os.environ.get("MAX_TIMEOUT"), 30)
VERIFY_TLS: bool = _parse_bool(os.environ.get("MAX_VERIFY_TLS"), True)
POLL_LIMIT: int = int(_parse_number(os.environ.get("MAX_POLL_LIMIT"), 100))
POLL_RETRY_DELAY: float = _parse_number(os.environ.get("MAX_POLL_RETRY_DELAY"), 5)


# ── Startup diagnostics ─────────────────────────────────────────────────────

if BOT_TOKEN:
    logger.info("Config loaded — MAX_BOT_TOKEN is set", extra={"base_url": BASE_URL})
else:
    logger.warning("Config loaded — MAX_BOT_TOKEN is NOT set")

logger.info(
    "Transport settings resolved",
    extra={"timeout": REQUEST_TIMEOUT, "verify_tls": VERIFY_TLS, "poll_limit": POLL_LIMIT},
)
