"""
infrastructure.config - Typed, injectable configuration.

A frozen dataclass that can be constructed from the environment (.env
supported) or passed explicitly in tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_BLOCKED_DOMAINS: tuple[str, ...] = (
    "thekitchn.com",
    "foodnetwork.com",
    "tasty.co",
    "buzzfeed.com",
    "showmetheyummy.com",
    "tastesbetterfromscratch.com",
    "allrecipes.com",
    "food.com",
    "epicurious.com",
    "bonappetit.com",
    "thehealthyhunterblog.com",
    "glutenfreecuppatea.co",
    "schoolnightvegan.com",
    "noracooks.com",
    "simplyleb.com",
    "theyummybowl.com",
)


def _split_csv(value: str) -> list[str]:
    return [item.strip().lower() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the recipe resolver.

    Construct via from_env() or pass explicitly in tests.
    """
    project_root: Path

    # ── Centralized LLM Provider ────────────────────────────────
    # One setting controls ALL LLM components (search, formatter,
    # substituter, intent extractor).
    # Allowed: "anthropic", "openai", "groq", "ollama"
    llm_provider: str = "anthropic"

    # Model names: only the one matching llm_provider is used.
    llm_model_anthropic: str = "claude-sonnet-4-5"
    llm_model_openai: str = "gpt-4.1-mini"
    llm_model_groq: str = "llama-3.3-70b-versatile"
    llm_model_ollama: str = "llama3.2"

    # Connection details
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    groq_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434/"

    # Database
    db_path: str = "recipes.db"

    # Candidate search
    search_max_candidates: int = 10
    search_max_uses: int = 5
    blocked_domains: tuple[str, ...] = DEFAULT_BLOCKED_DOMAINS

    # Content acquisition
    fetch_timeout_seconds: float = 20.0
    fetch_max_retries: int = 2
    min_content_chars: int = 200
    max_content_chars: int = 15000

    # Extraction / overall deadline
    format_timeout_seconds: float = 60.0
    resolution_deadline_seconds: float = 120.0

    log_level: str = "INFO"

    @property
    def active_llm_model(self) -> str:
        """Return the model name for the currently active LLM provider."""
        if self.llm_provider == "openai":
            return self.llm_model_openai
        elif self.llm_provider == "groq":
            return self.llm_model_groq
        elif self.llm_provider == "ollama":
            return self.llm_model_ollama
        return self.llm_model_anthropic

    @property
    def llm_credentials(self) -> dict[str, str]:
        """Keyword arguments shared by every build_llm() call."""
        return {
            "anthropic_api_key": self.anthropic_api_key,
            "openai_api_key": self.openai_api_key,
            "groq_api_key": self.groq_api_key,
            "ollama_base_url": self.ollama_base_url,
        }

    @classmethod
    def from_env(cls, project_root: Optional[Path] = None) -> Settings:
        """Build Settings from the environment."""
        from dotenv import load_dotenv
        load_dotenv()

        root = project_root or Path(__file__).resolve().parent.parent.parent

        extra_blocked = _split_csv(os.getenv("BLOCKED_DOMAINS", ""))
        blocked = tuple(dict.fromkeys(DEFAULT_BLOCKED_DOMAINS + tuple(extra_blocked)))

        return cls(
            project_root=root,

            llm_provider=os.getenv("LLM_PROVIDER", "anthropic").lower().strip(),
            llm_model_anthropic=os.getenv("LLM_MODEL_ANTHROPIC", "claude-sonnet-4-5"),
            llm_model_openai=os.getenv("LLM_MODEL_OPENAI", "gpt-4.1-mini"),
            llm_model_groq=os.getenv("LLM_MODEL_GROQ", "llama-3.3-70b-versatile"),
            llm_model_ollama=os.getenv("LLM_MODEL_OLLAMA", "llama3.2"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/"),

            db_path=os.getenv("DB_PATH", "recipes.db"),

            search_max_candidates=int(os.getenv("SEARCH_MAX_CANDIDATES", "10")),
            search_max_uses=int(os.getenv("SEARCH_MAX_USES", "5")),
            blocked_domains=blocked,

            fetch_timeout_seconds=float(os.getenv("FETCH_TIMEOUT_SECONDS", "20")),
            fetch_max_retries=int(os.getenv("FETCH_MAX_RETRIES", "2")),
            min_content_chars=int(os.getenv("MIN_CONTENT_CHARS", "200")),
            max_content_chars=int(os.getenv("MAX_CONTENT_CHARS", "15000")),

            format_timeout_seconds=float(os.getenv("FORMAT_TIMEOUT_SECONDS", "60")),
            resolution_deadline_seconds=float(os.getenv("RESOLUTION_DEADLINE_SECONDS", "120")),

            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
