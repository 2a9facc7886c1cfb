import os


def _flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


def _int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


# --- runtime switches --------------------------------------------------------
SCRAPER_DEBUG = _flag("SCRAPER_DEBUG")
HTTP_DEBUG = _flag("HTTP_DEBUG")
SCRAPER_USE_BROWSER = _flag("SCRAPER_USE_BROWSER", "1")
SCRAPER_PROXY = os.getenv("SCRAPER_PROXY", "").strip()

# --- orchestration -----------------------------------------------------------
MAX_PAGES_PER_SOURCE = _int("SCRAPER_MAX_PAGES", 5)
TIMEOUT_PER_SOURCE_MS = _int("SCRAPER_TIMEOUT_MS", 120_000)
DEFAULT_PAGE = 1
DEFAULT_LIMIT = _int("SEARCH_DEFAULT_LIMIT", 50)

# --- collaborators -----------------------------------------------------------
MONGO_URI = os.getenv("MONGO_URI", "").strip()
MONGO_DB = os.getenv("MONGO_DB", "arriendos").strip() or "arriendos"
EXPORT_DIR = os.getenv("SEARCH_EXPORT_DIR", "").strip()

# --- plausibility bounds (COP, m²) -------------------------------------------
MIN_VALID_PRICE = 300_000
MAX_VALID_PRICE = 50_000_000
MIN_MINED_PRICE = 500_000
MAX_MINED_PRICE = 50_000_000
MAX_VALID_AREA = 1000
MAX_VALID_ROOMS = 20
MIN_TITLE_LENGTH = 5
MIN_SEARCH_PRICE = 500_000
LOCATION_MIN_CONFIDENCE = 0.6

# --- rate limiter ------------------------------------------------------------
RATE_WINDOW_MS = 60_000
RATE_POLL_MS = 100
RATE_WINDOW_RECHECK_MS = 1_000
