"""
Text extraction for API documentation sources.

PDFs are read with pdfplumber. Documentation websites are crawled
breadth-first (same origin, bounded depth and page count) and stripped of
navigation chrome with BeautifulSoup.
"""

import io
from collections import deque
from urllib.parse import urldefrag, urljoin, urlparse

import httpx
import pdfplumber
import structlog
from bs4 import BeautifulSoup

from datalive.core.config import settings
from datalive.core.exceptions import ExtractionError

logger = structlog.get_logger(module="text_extractor")

DOC_KEYWORDS = (
    "/docs",
    "/documentation",
    "/api",
    "/reference",
    "/guide",
    "/tutorial",
    "/getting-started",
    "/endpoints",
)

# Removed before text extraction
NOISE_TAGS = ["script", "style", "nav", "footer", "noscript"]


# =============================================================================
# PDF
# =============================================================================


def extract_pdf_text(data: bytes) -> str:
    """Join the text of every page in a PDF."""
    if not data:
        raise ExtractionError("Empty PDF upload")

    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        logger.error("pdf_extraction_failed", error=str(e))
        raise ExtractionError(f"Could not read PDF: {e}") from e

    text = "\n\n".join(p for p in pages if p.strip())
    logger.info("pdf_extracted", pages=len(pages), content_len=len(text))
    if not text.strip():
        raise ExtractionError("PDF contains no extractable text", {"pages": len(pages)})
    return text


# =============================================================================
# Websites
# =============================================================================


def is_documentation_url(url: str) -> bool:
    lowered = url.lower()
    return any(keyword in lowered for keyword in DOC_KEYWORDS)


def html_to_text(html: str) -> tuple[str | None, str]:
    """Return ``(title, visible text)`` for an HTML page."""
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.string.strip() if soup.title and soup.title.string else None
    for tag in soup(NOISE_TAGS):
        tag.decompose()
    body = soup.body or soup
    lines = (line.strip() for line in body.get_text("\n").splitlines())
    return title, "\n".join(line for line in lines if line)


def extract_links(html: str, page_url: str, origin: str) -> list[str]:
    """Same-origin documentation links found on a page, fragments removed."""
    soup = BeautifulSoup(html, "html.parser")
    links = []
    for tag in soup.find_all("a", href=True):
        href = tag["href"]
        if not href or href.startswith(("javascript:", "mailto:", "tel:", "#")):
            continue
        absolute, _ = urldefrag(urljoin(page_url, href))
        parsed = urlparse(absolute)
        if parsed.scheme not in ("http", "https"):
            continue
        if f"{parsed.scheme}://{parsed.netloc}" != origin:
            continue
        if is_documentation_url(absolute):
            links.append(absolute)
    return links


async def fetch_url_text(
    url: str,
    max_pages: int | None = None,
    max_depth: int | None = None,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Crawl a documentation site and return the combined page text.

    Raises:
        ExtractionError: The start URL is invalid or no page yielded text.
    """
    max_pages = max_pages or settings.scraper_max_pages
    max_depth = settings.scraper_max_depth if max_depth is None else max_depth

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ExtractionError(f"Invalid documentation URL: {url}")
    origin = f"{parsed.scheme}://{parsed.netloc}"

    log = logger.bind(url=url, max_pages=max_pages, max_depth=max_depth)
    log.info("scrape_start")

    own_client = client is None
    if own_client:
        client = httpx.AsyncClient(
            timeout=settings.scraper_timeout,
            follow_redirects=True,
            headers={"User-Agent": settings.scraper_user_agent},
        )

    start, _ = urldefrag(url)
    queue: deque[tuple[str, int]] = deque([(start, 0)])
    visited = {start}
    sections: list[str] = []

    try:
        while queue and len(sections) < max_pages:
            page_url, depth = queue.popleft()
            try:
                response = await client.get(page_url)
            except httpx.HTTPError as e:
                log.warning("scrape_page_failed", page=page_url, error=str(e))
                continue
            if response.status_code != 200:
                log.debug("scrape_page_skipped", page=page_url, status=response.status_code)
                continue

            title, text = html_to_text(response.text)
            if text:
                header = f"# {title}\n" if title else ""
                sections.append(f"{header}Source: {page_url}\n\n{text}")
                log.debug("scrape_page_done", page=page_url, content_len=len(text))

            if depth >= max_depth:
                continue
            for link in extract_links(response.text, page_url, origin):
                if link not in visited:
                    visited.add(link)
                    queue.append((link, depth + 1))
    finally:
        if own_client:
            await client.aclose()

    if not sections:
        log.error("scrape_empty")
        raise ExtractionError(f"No readable content at {url}", {"url": url})

    combined = "\n\n".join(sections)
    log.info("scrape_completed", pages=len(sections), content_len=len(combined))
    return combined
