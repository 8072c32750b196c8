"""
infrastructure.scraping.content_fetcher - Recipe page acquisition.

Implements ContentFetcherPort with requests + BeautifulSoup. Uses run_in_executor
for async compat; each HTTP call has its own timeout.

Retry policy:
    - 4xx            → fail immediately (the site is refusing us, retrying won't help)
    - 5xx / network  → retry up to max_retries more times with a short back-off

Extraction:
    1. JSON-LD Recipe blocks are rendered to text (most structured source).
    2. Noise (scripts, nav, footer, ads, cookie banners...) is stripped.
    3. Content regions are tried in priority order; first one with enough
       text wins, else the whole body.
    4. One representative image is picked, best effort.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from typing import Any, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup, Tag

from domain.models import ScrapeResult
from domain.exceptions import AcquisitionError, ContentTooShortError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/123.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

NOISE_TAGS = ["script", "style", "noscript", "nav", "header", "footer", "aside", "form", "iframe", "svg"]
NOISE_SELECTORS = [
    "[class*='advert']", "[class*='ad-container']", "[class*='banner']",
    "[class*='popup']", "[class*='modal']", "[class*='cookie']", "[id*='cookie']",
    "[class*='newsletter']", "[class*='share']", "[class*='social']", "[class*='comment']",
]
CONTENT_SELECTORS = [
    "[itemtype*='schema.org/Recipe']",
    ".wprm-recipe-container",
    ".tasty-recipes",
    ".mv-create-card",
    ".recipe-card",
    "[class*='recipe-content']",
    "article",
    "main",
    "[role='main']",
    ".entry-content",
    ".post-content",
    "#content",
]
MIN_REGION_CHARS = 500


class RequestsContentFetcher:
    """Fetch a recipe page and extract its main text plus an image."""

    def __init__(
        self,
        *,
        timeout: float = 20.0,
        max_retries: int = 2,
        backoff_seconds: float = 1.0,
        min_content_chars: int = 200,
        max_content_chars: int = 15000,
        session: Optional[requests.Session] = None,
    ):
        self._timeout = timeout
        self._max_retries = max_retries
        self._backoff = backoff_seconds
        self._min_chars = min_content_chars
        self._max_chars = max_content_chars
        self._session = session or requests.Session()
        self._session.headers.update(DEFAULT_HEADERS)

    async def fetch(self, url: str) -> ScrapeResult:
        loop = asyncio.get_running_loop()
        html = await loop.run_in_executor(None, self._download, url)
        result = extract_content(html, url, max_chars=self._max_chars)

        if len(result.content) < self._min_chars:
            logger.warning("Content from %s too short (%d chars)", url, len(result.content))
            raise ContentTooShortError(url, len(result.content), self._min_chars)

        logger.info(
            "Scraped %d chars from %s%s",
            len(result.content), url, " (with image)" if result.image_url else "",
        )
        return result

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    def _download(self, url: str) -> str:
        """Synchronous GET with retries (runs in thread pool)."""
        last_error: Optional[AcquisitionError] = None
        cause: Optional[Exception] = None

        for attempt in range(self._max_retries + 1):
            if attempt:
                time.sleep(self._backoff * attempt)
                logger.info("Retrying %s (attempt %d/%d)", url, attempt + 1, self._max_retries + 1)
            try:
                response = self._session.get(url, timeout=self._timeout, allow_redirects=True)
            except requests.exceptions.Timeout as e:
                last_error = AcquisitionError(f"Network timeout after {self._timeout:g}s fetching {url}", url=url)
                cause = e
                continue
            except requests.exceptions.RequestException as e:
                last_error = AcquisitionError(f"Network error fetching {url}: {e}", url=url)
                cause = e
                continue

            status = response.status_code
            if 400 <= status < 500:
                raise AcquisitionError(
                    f"HTTP {status} {response.reason or ''}".strip() + f" for {url}",
                    url=url,
                    status_code=status,
                )
            if status >= 500:
                last_error = AcquisitionError(
                    f"HTTP {status} {response.reason or ''}".strip() + f" for {url}",
                    url=url,
                    status_code=status,
                )
                cause = None
                continue

            return response.text

        logger.warning("Giving up on %s after %d attempt(s)", url, self._max_retries + 1)
        raise last_error from cause


# ---------------------------------------------------------------------------
# HTML extraction (pure, unit-testable)
# ---------------------------------------------------------------------------

def extract_content(html: str, url: str, max_chars: int = 15000) -> ScrapeResult:
    soup = BeautifulSoup(html, "html.parser")

    json_ld = _json_ld_recipes(soup)
    image_url = _meta_image(soup, url) or _json_ld_image(json_ld, url)

    for tag in soup(NOISE_TAGS):
        if not tag.decomposed:
            tag.decompose()
    for selector in NOISE_SELECTORS:
        for tag in soup.select(selector):
            if not tag.decomposed and not _is_recipe_container(tag):
                tag.decompose()

    region = _main_region(soup)
    if image_url is None and region is not None:
        image_url = _first_image(region, url)

    body_text = _clean_text(region.get_text("\n") if region is not None else soup.get_text("\n"))
    structured = "\n\n".join(_render_json_ld(r) for r in json_ld)
    content = f"{structured}\n\n{body_text}".strip() if structured else body_text

    return ScrapeResult(content=content[:max_chars], image_url=image_url)


def _main_region(soup: BeautifulSoup) -> Optional[Tag]:
    for selector in CONTENT_SELECTORS:
        for element in soup.select(selector):
            if len(element.get_text(strip=True)) >= MIN_REGION_CHARS:
                return element
    return soup.body or soup


def _is_recipe_container(tag: Tag) -> bool:
    classes = " ".join(tag.get("class") or []).lower()
    return "recipe" in classes or "schema.org/recipe" in (tag.get("itemtype") or "").lower()


def _clean_text(text: str) -> str:
    lines = [re.sub(r"[ \t\xa0]+", " ", line).strip() for line in text.splitlines()]
    text = "\n".join(line for line in lines if line)
    return re.sub(r"\n{3,}", "\n\n", text)


def _meta_image(soup: BeautifulSoup, url: str) -> Optional[str]:
    for attrs in ({"property": "og:image"}, {"name": "og:image"}, {"name": "twitter:image"}, {"property": "twitter:image"}):
        tag = soup.find("meta", attrs=attrs)
        if tag and tag.get("content"):
            return urljoin(url, tag["content"].strip())
    return None


def _first_image(region: Tag, url: str) -> Optional[str]:
    for img in region.find_all("img"):
        src = img.get("src") or img.get("data-src") or img.get("data-lazy-src")
        if src and not src.startswith("data:"):
            return urljoin(url, src.strip())
    return None


# ---------------------------------------------------------------------------
# JSON-LD
# ---------------------------------------------------------------------------

def _json_ld_recipes(soup: BeautifulSoup) -> list[dict]:
    recipes: list[dict] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or script.get_text() or "")
        except (json.JSONDecodeError, TypeError):
            continue
        recipes.extend(_find_recipe_nodes(data))
    return recipes


def _find_recipe_nodes(data: Any) -> list[dict]:
    if isinstance(data, list):
        return [node for item in data for node in _find_recipe_nodes(item)]
    if not isinstance(data, dict):
        return []
    node_type = data.get("@type")
    types = node_type if isinstance(node_type, list) else [node_type]
    if "Recipe" in types:
        return [data]
    if "@graph" in data:
        return _find_recipe_nodes(data["@graph"])
    return []


def _json_ld_image(recipes: list[dict], url: str) -> Optional[str]:
    for recipe in recipes:
        image = recipe.get("image")
        if isinstance(image, list) and image:
            image = image[0]
        if isinstance(image, dict):
            image = image.get("url")
        if isinstance(image, str) and image:
            return urljoin(url, image)
    return None


def _render_json_ld(recipe: dict) -> str:
    lines: list[str] = []
    if recipe.get("name"):
        lines.append(f"Recipe: {recipe['name']}")
    if recipe.get("description"):
        lines.append(f"Description: {recipe['description']}")
    if recipe.get("recipeYield"):
        yields = recipe["recipeYield"]
        lines.append(f"Yield: {yields[0] if isinstance(yields, list) else yields}")

    ingredients = recipe.get("recipeIngredient") or []
    if ingredients:
        lines.append("Ingredients:")
        lines.extend(f"- {i}" for i in ingredients if isinstance(i, str))

    steps = _instruction_steps(recipe.get("recipeInstructions"))
    if steps:
        lines.append("Instructions:")
        lines.extend(f"{n}. {step}" for n, step in enumerate(steps, 1))
    return "\n".join(lines)


def _instruction_steps(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    steps: list[str] = []
    for item in value or []:
        if isinstance(item, str):
            steps.append(item.strip())
        elif isinstance(item, dict):
            if item.get("@type") == "HowToSection":
                steps.extend(_instruction_steps(item.get("itemListElement")))
            elif item.get("text"):
                steps.append(str(item["text"]).strip())
    return [s for s in steps if s]
