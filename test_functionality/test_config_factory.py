"""
Tests for Settings (environment parsing) and the ServiceFactory wiring that
doesn't need LLM credentials.
"""

from pathlib import Path

import pytest

from infrastructure.config import DEFAULT_BLOCKED_DOMAINS, Settings
from factory import ServiceFactory


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "LLM_PROVIDER", "BLOCKED_DOMAINS", "DB_PATH", "SEARCH_MAX_CANDIDATES",
        "RESOLUTION_DEADLINE_SECONDS", "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    # keep a developer's .env out of the way
    monkeypatch.setattr("dotenv.load_dotenv", lambda *a, **k: False)
    return monkeypatch


def test_defaults(clean_env, tmp_path):
    settings = Settings.from_env(project_root=tmp_path)

    assert settings.llm_provider == "anthropic"
    assert settings.active_llm_model == settings.llm_model_anthropic
    assert settings.blocked_domains == DEFAULT_BLOCKED_DOMAINS
    assert settings.search_max_candidates == 10
    assert settings.resolution_deadline_seconds == 120.0


def test_environment_overrides(clean_env, tmp_path):
    clean_env.setenv("LLM_PROVIDER", " Groq ")
    clean_env.setenv("BLOCKED_DOMAINS", "Example.com, allrecipes.com ,")
    clean_env.setenv("SEARCH_MAX_CANDIDATES", "3")
    clean_env.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env(project_root=tmp_path)

    assert settings.llm_provider == "groq"
    assert settings.active_llm_model == settings.llm_model_groq
    assert settings.blocked_domains[-1] == "example.com"
    assert settings.blocked_domains.count("allrecipes.com") == 1
    assert settings.search_max_candidates == 3
    assert settings.log_level == "DEBUG"


def test_credentials_bundle():
    settings = Settings(project_root=Path("."), anthropic_api_key="k")
    assert settings.llm_credentials["anthropic_api_key"] == "k"
    assert set(settings.llm_credentials) == {
        "anthropic_api_key", "openai_api_key", "groq_api_key", "ollama_base_url",
    }


def test_relative_db_path_resolves_under_project_root(tmp_path):
    factory = ServiceFactory(Settings(project_root=tmp_path, db_path="data.db"))
    assert factory.connection.db_path == str(tmp_path / "data.db")


@pytest.mark.asyncio
async def test_library_service_runs_against_fresh_database(tmp_path):
    factory = ServiceFactory(Settings(project_root=tmp_path, db_path="data.db"))
    await factory.init_db()

    library = factory.create_library_service()

    assert await library.list_recipes("u1") == []
    assert (tmp_path / "data.db").exists()
