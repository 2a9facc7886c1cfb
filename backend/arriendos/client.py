import logging
import random
import httpx

from backend.arriendos.settings import HTTP_DEBUG, SCRAPER_PROXY

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def new_client(timeout: float = 30.0) -> httpx.AsyncClient:
    """
    Create a configured AsyncClient for listing pages with optional proxy and debug logging.
    Uses a small connection pool and retries for transient network errors.
    """
    if HTTP_DEBUG:
        logging.getLogger("httpx").setLevel(logging.DEBUG)

    limits = httpx.Limits(max_keepalive_connections=5, max_connections=10)
    transport = httpx.AsyncHTTPTransport(retries=2, limits=limits, proxy=SCRAPER_PROXY or None)
    return httpx.AsyncClient(
        timeout=timeout,
        headers={
            "User-Agent": random_user_agent(),
            "Accept-Language": "es-CO,es;q=0.9,en;q=0.8",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Cache-Control": "no-cache",
        },
        follow_redirects=True,
        transport=transport,
    )


async def fetch_html(url: str, client: httpx.AsyncClient | None = None) -> str:
    """Fetch a listing page and return its body. Raises httpx errors on non-2xx."""
    if client is not None:
        r = await client.get(url)
        r.raise_for_status()
        return r.text
    async with new_client() as own:
        r = await own.get(url)
        r.raise_for_status()
        return r.text
