"""
Run the recipe resolver CLI.

Usage:
    python run_cli.py [COMMAND] [OPTIONS]

Commands:
    init-db    Create the SQLite schema
    resolve    Resolve one dish into a safe stored recipe
    generate   Resolve the dish decided in a stored conversation
    recipes    List a user's stored recipes

Examples:
    python run_cli.py init-db
    python run_cli.py resolve "kimchi stew" --user u1 --premium --allergen shellfish
    python run_cli.py recipes --user u1 --saved

Environment variables (all optional):
    LLM_PROVIDER        "anthropic", "openai", "groq" or "ollama"; controls ALL LLM components
    LLM_MODEL_ANTHROPIC Model name when LLM_PROVIDER=anthropic (default: claude-sonnet-4-5)
    LLM_MODEL_OPENAI    Model name when LLM_PROVIDER=openai (default: gpt-4.1-mini)
    LLM_MODEL_GROQ      Model name when LLM_PROVIDER=groq (default: llama-3.3-70b-versatile)
    LLM_MODEL_OLLAMA    Model name when LLM_PROVIDER=ollama (default: llama3.2)
    DB_PATH             SQLite database file path (default: recipes.db)
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

from adapters.cli.main import app

if __name__ == "__main__":
    app()
