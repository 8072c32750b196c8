"""
application.services.orchestrator - Failover across recipe candidates.

State machine:

    SEARCHING ──► TRYING_CANDIDATE(0) ──► TRYING_CANDIDATE(1) ──► ... ──► EXHAUSTED
                          │                        │
                          └──────────► SUCCESS ◄───┘

Candidates are tried strictly in rank order, one at a time:
    fetch → format → attach scraped image → equipment gate → ingredient gate.

The first candidate that passes every stage wins. Every per-candidate failure
is logged, recorded as last_error and the next candidate is tried. The overall
deadline is checked between candidates only; an in-flight stage is bounded by
its own timeout.

The orchestrator itself is stateless; each call works on its own
_ResolutionRun so concurrent requests never share attempted URLs or errors.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from domain.models import (
    RecipeCandidate,
    RecipeData,
    ResolutionExhausted,
    ResolutionOutcome,
    ResolutionState,
    ResolutionSuccess,
    SafetyProfile,
)
from domain.ports import CandidateSearchPort, ContentFetcherPort, RecipeFormatterPort
from domain.exceptions import (
    CandidateSearchError,
    DomainError,
    NoCandidatesError,
    ResolutionTimeoutError,
)
from application.services.safety_chain import SafetyFilterChain

logger = logging.getLogger(__name__)


@dataclass
class _ResolutionRun:
    """Mutable per-invocation state."""
    state: ResolutionState = ResolutionState.SEARCHING
    index: int = -1
    attempted_urls: list[str] = field(default_factory=list)
    last_error: Optional[Exception] = None

    def advance(self, state: ResolutionState, index: int = -1) -> None:
        logger.debug("Resolution state %s -> %s (candidate %d)", self.state.value, state.value, index)
        self.state = state
        self.index = index


class FailoverOrchestrator:
    """Drives search, acquisition, extraction and safety filtering across candidates."""

    def __init__(
        self,
        search: CandidateSearchPort,
        fetcher: ContentFetcherPort,
        formatter: RecipeFormatterPort,
        safety_chain: SafetyFilterChain,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._search = search
        self._fetcher = fetcher
        self._formatter = formatter
        self._safety_chain = safety_chain
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def deadline_in(self, seconds: Optional[float]) -> Optional[float]:
        """Absolute deadline on this orchestrator's clock, or None for no limit."""
        if seconds is None:
            return None
        return self._clock() + seconds

    async def resolve(
        self,
        query: str,
        profile: SafetyProfile,
        deadline: Optional[float] = None,
    ) -> ResolutionOutcome:
        """Search for candidates, then try them in order.

        Raises NoCandidatesError when neither the strict nor the relaxed
        search yields anything. Every other failure ends in ResolutionExhausted.
        """
        candidates = await self.find_candidates(query, profile)
        return await self.try_candidates(candidates, profile, deadline)

    async def find_candidates(self, query: str, profile: SafetyProfile) -> list[RecipeCandidate]:
        logger.info("Searching for recipes: %s", query)
        candidates: list[RecipeCandidate] = []
        strict_error: Optional[Exception] = None
        try:
            candidates = await self._search.search(query, profile, relaxed=False)
        except CandidateSearchError as e:
            strict_error = e
            logger.warning("Strict search failed: %s", e)

        if not candidates and profile.has_ingredient_constraints:
            logger.info("Strict search found nothing, retrying relaxed (will substitute)")
            try:
                candidates = await self._search.search(query, profile, relaxed=True)
            except CandidateSearchError as e:
                logger.warning("Relaxed search failed: %s", e)
                raise NoCandidatesError(f"Unable to find recipes for '{query}': {e}") from e

        if not candidates:
            detail = f": {strict_error}" if strict_error else ""
            raise NoCandidatesError(f"Unable to find recipes for '{query}'{detail}") from strict_error

        logger.info("Found %d recipe candidate(s)", len(candidates))
        return candidates

    async def try_candidates(
        self,
        candidates: list[RecipeCandidate],
        profile: SafetyProfile,
        deadline: Optional[float] = None,
    ) -> ResolutionOutcome:
        run = _ResolutionRun()

        for index, candidate in enumerate(candidates):
            if deadline is not None and self._clock() >= deadline:
                logger.warning(
                    "Resolution deadline passed after %d candidate(s)", len(run.attempted_urls),
                )
                run.last_error = ResolutionTimeoutError()
                break

            run.advance(ResolutionState.TRYING_CANDIDATE, index)
            run.attempted_urls.append(candidate.url)
            logger.info("Trying candidate %d/%d: %s", index + 1, len(candidates), candidate.url)

            try:
                recipe = await self._attempt(candidate, profile)
            except DomainError as e:
                run.last_error = e
                logger.warning("Candidate %s rejected: %s", candidate.url, e)
                continue
            except Exception as e:
                run.last_error = e
                logger.exception("Unexpected error on candidate %s", candidate.url)
                continue

            run.advance(ResolutionState.SUCCESS, index)
            logger.info("Resolved recipe '%s' from %s", recipe.title, candidate.url)
            return ResolutionSuccess(
                recipe=recipe,
                source_url=candidate.url,
                candidate=candidate,
                attempted_urls=list(run.attempted_urls),
            )

        run.advance(ResolutionState.EXHAUSTED)
        return ResolutionExhausted(
            last_error=run.last_error or NoCandidatesError("No candidates to try"),
            attempted_urls=list(run.attempted_urls),
        )

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    async def _attempt(self, candidate: RecipeCandidate, profile: SafetyProfile) -> RecipeData:
        scraped = await self._fetcher.fetch(candidate.url)
        recipe = await self._formatter.format(scraped.content, candidate.url, profile)

        recipe = replace(
            recipe,
            source_url=candidate.url,
            image_url=scraped.image_url or recipe.image_url,
        )
        return await self._safety_chain.screen(recipe, profile)
