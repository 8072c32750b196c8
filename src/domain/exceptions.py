"""
domain.exceptions - Custom exception hierarchy for the recipe resolver.

All domain-level errors inherit from DomainError so callers can catch
broad or specific exceptions as needed.

Only NoCandidatesError and ExhaustionError are surfaced to end users. The
per-candidate errors are folded into the orchestrator's last_error.
"""

from __future__ import annotations

from enum import Enum


class DomainError(Exception):
    """Base exception for all domain-level errors."""


# ---------------------------------------------------------------------------
# Candidate search (fatal)
# ---------------------------------------------------------------------------

class CandidateSearchError(DomainError):
    """Raised when the discovery step fails outright."""


class NoCandidatesError(CandidateSearchError):
    """Raised when search yields no usable recipe candidates at all."""


# ---------------------------------------------------------------------------
# Per-candidate failures (non-fatal)
# ---------------------------------------------------------------------------

class AcquisitionError(DomainError):
    """Raised when a candidate page cannot be fetched or has no usable content."""

    def __init__(self, message: str, url: str = "", status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ContentTooShortError(AcquisitionError):
    def __init__(self, url: str, length: int, minimum: int):
        super().__init__(
            f"Scraped content too short ({length} chars, minimum {minimum}), likely failed",
            url=url,
        )
        self.length = length
        self.minimum = minimum


class ExtractionFailureKind(str, Enum):
    TIMEOUT = "timeout"
    MALFORMED = "malformed"
    UPSTREAM = "upstream"


class ExtractionError(DomainError):
    """Raised when raw content cannot be turned into structured RecipeData."""

    kind = ExtractionFailureKind.UPSTREAM


class ExtractionTimeoutError(ExtractionError):
    kind = ExtractionFailureKind.TIMEOUT

    def __init__(self, timeout_seconds: float):
        super().__init__(f"Recipe formatting timed out after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


class MalformedRecipeError(ExtractionError):
    """The model answered, but not with a usable recipe structure."""

    kind = ExtractionFailureKind.MALFORMED


class ExtractionUpstreamError(ExtractionError):
    """The model provider call itself failed."""

    kind = ExtractionFailureKind.UPSTREAM


class SafetyViolationError(DomainError):
    """Base for gate rejections."""


class EquipmentViolationError(SafetyViolationError):
    def __init__(self, equipment: list[str]):
        super().__init__(
            f"Recipe requires unavailable equipment: {', '.join(equipment)}"
        )
        self.equipment = equipment


class IngredientViolationError(SafetyViolationError):
    """Disallowed ingredients remain after the substitution attempt."""

    def __init__(self, message: str, remaining: list[str] | None = None):
        super().__init__(message)
        self.remaining = remaining or []


class SubstitutionError(DomainError):
    """Raised when the substitution collaborator fails."""


# ---------------------------------------------------------------------------
# Request-level failures
# ---------------------------------------------------------------------------

class ResolutionTimeoutError(DomainError):
    """Raised when the overall resolution deadline passes between candidates."""

    def __init__(self, deadline_seconds: float | None = None):
        detail = f" after {deadline_seconds:g}s" if deadline_seconds else ""
        super().__init__(f"Recipe resolution timeout: deadline exceeded{detail}")
        self.deadline_seconds = deadline_seconds


class ExhaustionError(DomainError):
    """Raised when every candidate was tried and none was safe and usable."""

    def __init__(self, last_error: Exception | None, attempted_urls: list[str]):
        count = len(attempted_urls)
        last = str(last_error) if last_error else "Unknown error"
        super().__init__(
            f"Failed to scrape any of the {count} recipe URLs. Last error: {last}"
        )
        self.last_error = last_error
        self.attempted_urls = attempted_urls


class IntentExtractionError(DomainError):
    """Raised when the conversation cannot be turned into a cooking intent."""


class OffTopicIntentError(DomainError):
    """Raised when the conversation is not about cooking."""

    def __init__(self, intent):
        super().__init__("Off-topic conversation")
        self.intent = intent


class ConversationNotFoundError(DomainError):
    """Raised when a conversation has no messages to derive an intent from."""


class RecipeNotFoundError(DomainError):
    """Raised when a stored recipe does not exist for the given user."""


class RepositoryError(DomainError):
    """Raised when a database operation fails."""


class DatabaseUnavailableError(RepositoryError):
    """Raised when the database cannot be reached at all."""
