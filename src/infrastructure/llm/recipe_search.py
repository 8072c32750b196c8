"""
infrastructure.llm.recipe_search - Web-search-backed recipe candidate discovery.

Implements CandidateSearchPort. With LLM_PROVIDER="anthropic" the chat model
is bound to Anthropic's server-side web search tool (denylisted domains are
passed to the tool). Other providers answer from the model alone.

The model is asked for a JSON array of recipe pages. When the answer can't be
parsed, URLs are salvaged from the raw text and flagged as degraded. Either
way the result is re-filtered against the denylist, reduced to one candidate
per domain and capped.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Iterable, Optional
from urllib.parse import urlparse

from langchain_core.messages import BaseMessage
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.runnables import RunnableLambda
from langchain_core.utils.json import parse_json_markdown

from domain.models import RecipeCandidate, SafetyProfile
from domain.exceptions import CandidateSearchError, NoCandidatesError
from infrastructure.llm.llm_builder import build_llm

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

_SEARCH_TEMPLATE = """Search for: {query}{notes}


Find a specific recipe page URL (not a homepage or category page) from any reliable cooking website.

IMPORTANT: Return a URL to a specific recipe page that contains ingredients and instructions, NOT a homepage or category listing page.

Return a JSON array with 8-10 different recipe options, each from a DIFFERENT website/domain.
Each recipe should be a JSON object with this structure:
{{
  "title": "Recipe title",
  "url": "Full URL to the specific recipe page (not homepage)",
  "snippet": "Brief description"
}}

Return ONLY the JSON array, no other text. Example:
[
  {{"title": "Recipe 1", "url": "https://site1.com/recipe", "snippet": "Description 1"}},
  {{"title": "Recipe 2", "url": "https://site2.com/recipe", "snippet": "Description 2"}}
]"""

SALVAGED_SNIPPET = "Recipe found via web search"

# Tried in order; the first pattern that finds anything wins.
_URL_PATTERNS = [
    re.compile(r"https?://[^\s<>\"{}|\\^`\[\]]+"),
    re.compile(r"https?://[^\s,;)]+"),
    re.compile(r"https?://[^\s\"']+"),
    re.compile(r"(?:https?://)?(?:www\.)?[a-zA-Z0-9-]+\.[a-zA-Z]{2,}(?:/[^\s<>\"{}|\\^`\[\]]*)?"),
]
_TRAILING_PUNCTUATION = re.compile(r"[.,;:!?]+$")
_KNOWN_RECIPE_SITES = re.compile(
    r"(food52|seriouseats|bbcgoodfood|jamieoliver|delish|tasteofhome|simplyrecipes"
    r"|minimalistbaker|cookieandkate|pinchofyum|budgetbytes|recipetineats)\.com"
)
_SALVAGE_FALLBACK_LIMIT = 5


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def tune_query(query: str, proficiency: Optional[int]) -> str:
    """Append proficiency hints to the raw query (never stacked)."""
    if proficiency == 1:
        return f"{query} easy kid friendly"
    if proficiency == 2:
        return f"{query} easy"
    return query


def build_search_notes(profile: Optional[SafetyProfile], relaxed: bool) -> str:
    """Constraint notes appended to the search prompt."""
    if profile is None:
        return ""

    notes = ""
    parts: list[str] = []
    if profile.allergens:
        parts.append(f"allergen-free: {', '.join(sorted(profile.allergens))}")
    if profile.restrictions:
        parts.append(f"without: {', '.join(sorted(profile.restrictions))}")
    if parts:
        if relaxed:
            notes += (
                f"\n\nNOTE: User has dietary restrictions ({', '.join(parts)}). "
                "Return recipes even if they contain these - substitutions will be handled automatically."
            )
        else:
            notes += (
                f"\n\nIMPORTANT: The recipe must be {', '.join(parts)}. "
                "Filter out any recipes that contain these."
            )

    if profile.cooking_proficiency in (1, 2):
        notes += (
            "\n\nIMPORTANT: Prioritize simple, beginner-friendly recipes "
            "with clear step-by-step instructions."
        )
    elif profile.cooking_proficiency in (4, 5):
        notes += (
            "\n\nNOTE: Prefer recipes with advanced techniques or complex methods when available, "
            "but simple recipes are acceptable if that's what the dish naturally is "
            "(e.g., grilled cheese sandwich)."
        )

    if profile.unavailable_equipment:
        notes += (
            f"\n\nCRITICAL: Do NOT return recipes that require: "
            f"{', '.join(sorted(profile.unavailable_equipment))}. "
            "These are hard filters - exclude any recipe that needs these."
        )
    return notes


def registrable_host(url: str) -> str:
    """Lowercase host without port or leading "www.", "" when unparseable."""
    try:
        host = urlparse(url.lower()).hostname or ""
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host


def is_blocked(url: str, blocked_domains: Iterable[str]) -> bool:
    host = registrable_host(url)
    return any(host == d or host.endswith("." + d) for d in blocked_domains)


def parse_candidates(text: str) -> list[RecipeCandidate]:
    """Parse the model's JSON answer. Raises ValueError when it isn't usable JSON."""
    parsed = _load_json(text)
    items = parsed if isinstance(parsed, list) else [parsed]

    candidates: list[RecipeCandidate] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        url = str(item.get("url") or "").strip()
        title = str(item.get("title") or "").strip()
        if not url or not title:
            continue
        candidates.append(RecipeCandidate(
            title=title,
            url=url,
            snippet=str(item.get("snippet") or ""),
        ))
    if not candidates:
        raise ValueError("No valid recipe results found in parsed JSON")
    return candidates


def salvage_candidates(text: str, query: str) -> list[RecipeCandidate]:
    """Pull URLs out of unstructured text. Every result is marked degraded."""
    matches: list[str] = []
    for pattern in _URL_PATTERNS:
        matches = pattern.findall(text)
        if matches:
            break

    urls: list[str] = []
    for raw in matches:
        url = _TRAILING_PUNCTUATION.sub("", raw)
        if not url.startswith("http"):
            url = f"https://{url}"
        if registrable_host(url) and url not in urls:
            urls.append(url)

    recipe_like = [u for u in urls if _looks_like_recipe(u)]
    chosen = recipe_like or urls[:_SALVAGE_FALLBACK_LIMIT]
    return [
        RecipeCandidate(title=query, url=url, snippet=SALVAGED_SNIPPET, degraded=True)
        for url in chosen
    ]


def select_candidates(
    candidates: Iterable[RecipeCandidate],
    blocked_domains: Iterable[str],
    max_candidates: int,
) -> list[RecipeCandidate]:
    """Drop denylisted hosts, keep the first candidate per host, cap the list."""
    blocked = [d.lower() for d in blocked_domains]
    seen: set[str] = set()
    selected: list[RecipeCandidate] = []
    for candidate in candidates:
        host = registrable_host(candidate.url)
        if not host or host in seen or is_blocked(candidate.url, blocked):
            continue
        seen.add(host)
        selected.append(candidate)
        if len(selected) >= max_candidates:
            break
    return selected


def message_text(message: Any) -> str:
    """Flatten a chat model response (string or content blocks) into text."""
    content = message.content if isinstance(message, BaseMessage) else message
    if isinstance(content, str):
        return content

    chunks: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            chunks.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            chunks.append(block.get("text", ""))
    return "".join(chunks)


def _load_json(text: str) -> Any:
    try:
        return parse_json_markdown(text, parser=json.loads)
    except json.JSONDecodeError:
        start, end = text.find("["), text.rfind("]")
        if start == -1 or end <= start:
            raise
        return json.loads(text[start:end + 1])


def _looks_like_recipe(url: str) -> bool:
    lowered = url.lower()
    return (
        "recipe" in lowered
        or "cooking" in lowered
        or "food" in lowered
        or bool(_KNOWN_RECIPE_SITES.search(lowered))
    )


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------

class LLMRecipeSearch:
    """Implements CandidateSearchPort with a LangChain chat model (+ web search tool)."""

    def __init__(
        self,
        *,
        provider: str = "anthropic",
        model: str = "claude-sonnet-4-5",
        blocked_domains: Iterable[str] = (),
        max_candidates: int = 10,
        max_uses: int = 5,
        timeout_seconds: float = 90.0,
        anthropic_api_key: str = "",
        openai_api_key: str = "",
        groq_api_key: str = "",
        ollama_base_url: str = "http://localhost:11434/",
        llm: Any = None,
    ):
        self._blocked_domains = [d.lower() for d in blocked_domains]
        self._max_candidates = max_candidates
        self._timeout = timeout_seconds

        if llm is None:
            llm = build_llm(
                provider=provider,
                model=model,
                temperature=0,
                max_tokens=2048,
                anthropic_api_key=anthropic_api_key,
                openai_api_key=openai_api_key,
                groq_api_key=groq_api_key,
                ollama_base_url=ollama_base_url,
            )
            if provider == "anthropic":
                llm = llm.bind_tools([{
                    "type": "web_search_20250305",
                    "name": "web_search",
                    "max_uses": max_uses,
                    "blocked_domains": self._blocked_domains,
                }])
            else:
                logger.warning("Provider '%s' has no web search tool; results come from the model alone", provider)
        self._chain = self._build_chain(llm)

    def _build_chain(self, llm):
        prompt = ChatPromptTemplate.from_messages([
            ("user", _SEARCH_TEMPLATE),
        ])
        return prompt | llm | RunnableLambda(message_text)

    # ------------------------------------------------------------------
    # Public API (async)
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        profile: Optional[SafetyProfile],
        relaxed: bool = False,
    ) -> list[RecipeCandidate]:
        proficiency = profile.cooking_proficiency if profile else None
        tuned = tune_query(query, proficiency)
        notes = build_search_notes(profile, relaxed)
        logger.info("Searching for recipe: '%s' (original: '%s', relaxed=%s)", tuned, query, relaxed)

        text = await self._invoke(tuned, notes)
        if not text.strip():
            raise CandidateSearchError("Empty response from recipe search")

        try:
            candidates = parse_candidates(text)
        except ValueError as e:
            logger.warning("Search answer was not usable JSON (%s), salvaging URLs", e)
            candidates = salvage_candidates(text, query)

        selected = select_candidates(candidates, self._blocked_domains, self._max_candidates)
        if not selected:
            raise NoCandidatesError(f"No recipe URL found in search results for '{query}'")

        logger.info(
            "Found %d recipe option(s) from distinct sites%s",
            len(selected), " (salvaged)" if selected[0].degraded else "",
        )
        return selected

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    async def _invoke(self, query: str, notes: str) -> str:
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, self._chain.invoke, {"query": query, "notes": notes}),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise CandidateSearchError(f"Recipe search timed out after {self._timeout:g}s") from e
        except Exception as e:
            logger.error("Recipe search failed: %s", e)
            raise CandidateSearchError(f"Recipe search failed: {e}") from e
