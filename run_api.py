"""
Run the recipe resolver REST API.

Usage:
    python run_api.py

Environment variables (all optional):
    LLM_PROVIDER        "anthropic", "openai", "groq" or "ollama" (default: anthropic)
    ANTHROPIC_API_KEY   Required when LLM_PROVIDER=anthropic
    OPENAI_API_KEY      Required when LLM_PROVIDER=openai
    GROQ_API_KEY        Required when LLM_PROVIDER=groq
    DB_PATH             SQLite database file path (default: recipes.db)
    BLOCKED_DOMAINS     Extra comma-separated domains never to scrape
    LOG_LEVEL           Root log level (default: INFO)
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "adapters.rest.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
