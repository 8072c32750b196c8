"""
adapters.cli.main - CLI adapter for the recipe resolver.

Mirrors src/adapters/rest/ but for terminal use. Uses the same
ServiceFactory and services as the REST API so resolution behaviour is
identical.

Commands
--------
  init-db    Create the SQLite schema
  resolve    Resolve one dish into a safe stored recipe (ad-hoc profile)
  generate   Resolve the dish decided in a stored conversation
  recipes    List a user's stored recipes

Usage
-----
  python run_cli.py init-db
  python run_cli.py resolve "kimchi stew" --user u1 --premium --allergen shellfish
  python run_cli.py recipes --user u1 --saved
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

# ── Ensure src/ is on the path ──
_SRC = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(_SRC))

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from application.dto import RecipeGenerationResult, ResolutionRequest
from application.services.recipe_generation import (
    NO_CANDIDATES_MESSAGE,
    OFF_TOPIC_MESSAGE,
    failure_message_for,
)
from domain.exceptions import (
    ConversationNotFoundError,
    DomainError,
    ExhaustionError,
    NoCandidatesError,
    OffTopicIntentError,
)
from domain.models import SafetyProfile
from factory import ServiceFactory
from infrastructure.config import Settings

__version__ = "0.1.0"

console = Console()
app = typer.Typer(
    help="Recipe resolver CLI",
    add_completion=False,
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

async def _make_factory() -> ServiceFactory:
    """Create a ServiceFactory and make sure the DB schema is up to date."""
    config = Settings.from_env()
    factory = ServiceFactory(config)
    await factory.init_db()
    return factory


def _render_result(result: RecipeGenerationResult) -> None:
    stored = result.recipe
    recipe = stored.recipe_data
    if recipe is None:
        console.print("[bold red]Stored recipe has no content.[/bold red]")
        return

    lines = []
    if recipe.description:
        lines.append(f"[italic]{recipe.description}[/italic]\n")
    if recipe.portions:
        lines.append(f"[bold]Portions:[/bold] {recipe.portions}\n")
    lines.append("[bold]Ingredients[/bold]")
    lines.extend(f"  • {item}" for item in recipe.ingredients)
    lines.append("\n[bold]Instructions[/bold]")
    lines.extend(f"  {i}. {step}" for i, step in enumerate(recipe.instructions, 1))
    if recipe.substitutions:
        lines.append("\n[bold yellow]Substitutions[/bold yellow]")
        lines.extend(
            f"  {s.original} → {s.replacement}" + (f" ({s.reason})" if s.reason else "")
            for s in recipe.substitutions
        )
    lines.append(f"\n[dim]Source: {recipe.source_url}[/dim]")
    lines.append(f"[dim]Recipe ID: {stored.id}[/dim]")

    console.print(Panel("\n".join(lines), title=recipe.title, border_style="green"))
    if len(result.attempted_urls) > 1:
        console.print(f"[dim]Tried {len(result.attempted_urls)} candidate(s) before succeeding.[/dim]")


def _report_failure(exc: DomainError) -> None:
    if isinstance(exc, ExhaustionError):
        console.print(Panel(
            f"[bold red]Failed to retrieve recipe.[/bold red]\n"
            f"{failure_message_for(exc.last_error)}",
            border_style="red",
        ))
        for url in exc.attempted_urls:
            console.print(f"  [dim]✗ {url}[/dim]")
    elif isinstance(exc, NoCandidatesError):
        console.print(f"[bold red]{NO_CANDIDATES_MESSAGE}[/bold red]")
    elif isinstance(exc, OffTopicIntentError):
        console.print(f"[bold yellow]{OFF_TOPIC_MESSAGE}[/bold yellow]")
    else:
        console.print(f"[bold red]Error:[/bold red] {exc}")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"recipe-resolver v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Configure logging once for every command."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


# ---------------------------------------------------------------------------
# Commands: Setup
# ---------------------------------------------------------------------------

@app.command("init-db")
def init_db() -> None:
    """Create the recipe database schema (safe to run repeatedly)."""
    async def _run() -> None:
        factory = await _make_factory()
        console.print(f"[green]Database ready:[/green] {factory.connection.db_path}")

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Commands: Resolution (needs LLM credentials)
# ---------------------------------------------------------------------------

@app.command()
def resolve(
    dish: str = typer.Argument(..., help="Dish to find a recipe for."),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Search phrase (defaults to the dish)."),
    user: str = typer.Option(..., "--user", "-u", help="User ID to store the recipe under."),
    premium: bool = typer.Option(False, "--premium", help="Apply allergen/restriction/proficiency filtering."),
    allergen: List[str] = typer.Option([], "--allergen", "-a", help="Allergen to avoid (repeatable)."),
    restriction: List[str] = typer.Option([], "--restriction", "-r", help="Dietary restriction (repeatable)."),
    no_equipment: List[str] = typer.Option([], "--no-equipment", "-e", help="Unavailable equipment (repeatable)."),
    proficiency: Optional[int] = typer.Option(None, "--proficiency", min=1, max=5, help="Cooking proficiency 1-5."),
) -> None:
    """Resolve one dish into a safe, stored recipe."""
    profile = SafetyProfile.effective(
        allergens=allergen,
        restrictions=restriction,
        unavailable_equipment=no_equipment,
        is_premium=premium,
        cooking_proficiency=proficiency,
    )
    if not premium and (allergen or restriction or proficiency):
        console.print("[dim]Allergens, restrictions and proficiency apply to premium users only.[/dim]")

    async def _run() -> None:
        factory = await _make_factory()
        service = factory.create_generation_service()
        request = ResolutionRequest(
            dish=dish,
            search_query=query or dish,
            user_id=user,
            profile=profile,
        )
        try:
            with console.status(f"[bold cyan]Resolving '{dish}'…", spinner="dots"):
                result = await service.generate(request)
        except DomainError as exc:
            _report_failure(exc)
            raise typer.Exit(code=1)
        _render_result(result)

    asyncio.run(_run())


@app.command()
def generate(
    conversation: str = typer.Argument(..., help="Conversation ID."),
    user: str = typer.Option(..., "--user", "-u", help="Owner of the conversation."),
    pantry: bool = typer.Option(False, "--pantry", help="Hint the search with pantry items."),
) -> None:
    """Resolve the dish a stored conversation settled on."""
    async def _run() -> None:
        factory = await _make_factory()
        service = factory.create_generation_service()
        try:
            with console.status("[bold cyan]Reading conversation…", spinner="dots"):
                result = await service.generate_from_conversation(
                    user, conversation, include_pantry=pantry,
                )
        except ConversationNotFoundError as exc:
            console.print(f"[bold red]{exc}[/bold red]")
            raise typer.Exit(code=1)
        except DomainError as exc:
            _report_failure(exc)
            raise typer.Exit(code=1)
        if result.intent is not None:
            console.print(f"[dim]Decided dish: {result.intent.dish} ({result.intent.status.value})[/dim]")
        _render_result(result)

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Commands: Library (DB only)
# ---------------------------------------------------------------------------

@app.command()
def recipes(
    user: str = typer.Option(..., "--user", "-u", help="User ID."),
    saved: bool = typer.Option(False, "--saved", help="Only saved recipes."),
) -> None:
    """List a user's stored recipes, newest first."""
    async def _run() -> None:
        factory = await _make_factory()
        stored = await factory.create_library_service().list_recipes(user, saved_only=saved)
        if not stored:
            console.print("[dim]No recipes yet.[/dim]")
            return

        t = Table(box=box.SIMPLE, padding=(0, 2))
        t.add_column("ID", style="dim")
        t.add_column("Title", style="bold")
        t.add_column("Saved")
        t.add_column("Subs")
        t.add_column("Source")
        for r in stored:
            title = r.recipe_data.title if r.recipe_data else r.recipe_name_lower
            t.add_row(
                r.id,
                title,
                "✓" if r.is_saved else "",
                "✓" if r.has_substitutions else "",
                r.source_url_lower,
            )
        console.print(t)

    asyncio.run(_run())


if __name__ == "__main__":
    app()
