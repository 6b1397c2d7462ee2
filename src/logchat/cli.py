"""
LogChat CLI

Command-line interface for asking questions about an activity log and
running the service.

Usage:
    logchat ask "query" -u USER     - Answer one question (locally or via the API)
    logchat ingest -u USER          - Index a user's logs for retrieval
    logchat add-log -u USER "text"  - Record an activity in the local store
    logchat add-area -u USER NAME   - Create a life area in the local store
    logchat serve                   - Run the HTTP API
    logchat config                  - Show effective configuration
"""

import json
import os
import uuid
from datetime import datetime, timezone
from typing import Optional

import httpx
import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from logchat import __version__

# Initialize Typer app and Rich console
app = typer.Typer(
    name="logchat",
    help="LogChat - questions and answers over your activity log",
    add_completion=False
)
console = Console()

# Default API URL
DEFAULT_API_URL = "http://localhost:8080"


# =============================================================================
# Helper Functions
# =============================================================================

def get_api_url() -> str:
    """Get the API URL from environment or default."""
    return os.getenv("LOGCHAT_API_URL", DEFAULT_API_URL)


def get_api_headers() -> dict:
    """Get headers for API requests including auth and origin."""
    headers = {
        "Content-Type": "application/json",
        "Origin": os.getenv("LOGCHAT_API_ORIGIN", get_api_url()),
    }
    token = os.getenv("LOGCHAT_API_TOKEN", "")
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def api_request(endpoint: str, data: Optional[dict] = None, timeout: float = 120.0) -> dict:
    """POST to the running service."""
    url = f"{get_api_url()}{endpoint}"
    with httpx.Client(timeout=timeout) as client:
        response = client.post(url, json=data or {}, headers=get_api_headers())
    if response.status_code >= 400:
        try:
            message = response.json().get("error", response.text)
        except ValueError:
            message = response.text
        raise typer.BadParameter(f"{response.status_code}: {message}")
    return response.json()


def _local_services():
    from logchat.main import build_services
    return build_services()


def _print_answer(answer: str, sources: list) -> None:
    console.print(Markdown(answer))
    if sources:
        table = Table(title="Sources")
        table.add_column("ID", style="cyan")
        table.add_column("Title")
        table.add_column("Occurred at", style="dim")
        for source in sources:
            table.add_row(source["id"], source["title"], source.get("occurred_at") or "")
        console.print(table)


# =============================================================================
# Chat Commands
# =============================================================================

@app.command()
def ask(
    query: str = typer.Argument(..., help="Question to answer"),
    user: str = typer.Option(..., "-u", "--user", help="User id"),
    remote: bool = typer.Option(False, "--remote", help="Send the query to the running API"),
    top_k: int = typer.Option(8, "--top-k", help="Chunks to retrieve"),
):
    """Answer a single question."""
    from logchat.core.errors import LogChatError

    if remote:
        try:
            result = api_request("/chat", {"query": query, "top_k": top_k})
        except httpx.ConnectError:
            console.print(f"[red]Cannot connect to {get_api_url()}[/red]")
            raise typer.Exit(1)
        _print_answer(result["answer"], result.get("sources", []))
        return

    services = _local_services()
    try:
        answer = services.pipeline.answer(user, query, top_k=top_k)
    except LogChatError as e:
        console.print(f"[red]Error ({e.status_code}):[/red] {e.message}")
        raise typer.Exit(1)
    _print_answer(answer.text, [s.to_dict() for s in answer.sources])


@app.command()
def ingest(
    user: str = typer.Option(..., "-u", "--user", help="User id"),
    since: Optional[datetime] = typer.Option(None, "--since", help="Only logs at or after this time"),
):
    """Index a user's logs into the document index."""
    services = _local_services()
    if not services.ingest.active:
        console.print("[yellow]External embeddings are disabled; nothing will be indexed.[/yellow]")
    with console.status("Indexing logs..."):
        result = services.ingest.ingest_user(user, since=since)
    console.print(f"[green]✓[/green] {result.logs} logs, {result.chunks} chunks")


# =============================================================================
# Local Store Commands
# =============================================================================

@app.command("add-log")
def add_log(
    text: str = typer.Argument(..., help="Note text"),
    user: str = typer.Option(..., "-u", "--user", help="User id"),
    area: Optional[str] = typer.Option(None, "--area", help="Life area"),
    title: Optional[str] = typer.Option(None, "--title", help="Title"),
    duration: Optional[int] = typer.Option(None, "--duration", min=0, help="Duration in minutes"),
    xp: int = typer.Option(0, "--xp", help="Earned XP"),
):
    """Record an activity in the local store."""
    from logchat.models.records import ActivityLog

    if area or title:
        notes = json.dumps({
            "title": title or "",
            "area": area or "",
            "delta": [{"insert": text + "\n"}],
        }, ensure_ascii=False)
    else:
        notes = text

    log = ActivityLog(
        id=str(uuid.uuid4()),
        user_id=user,
        occurred_at=datetime.now(timezone.utc),
        duration_min=duration,
        notes=notes,
        earned_xp=xp,
    )
    _local_services().store.add_log(log)
    console.print(f"[green]✓[/green] Logged {log.id}")


@app.command("add-area")
def add_area(
    name: str = typer.Argument(..., help="Area name"),
    user: str = typer.Option(..., "-u", "--user", help="User id"),
    category: str = typer.Option("", "--category", help="Category"),
):
    """Create a life area in the local store."""
    from logchat.models.records import LifeArea

    _local_services().store.add_area(LifeArea(user_id=user, name=name, category=category))
    console.print(f"[green]✓[/green] Area '{name}' created")


# =============================================================================
# Service Commands
# =============================================================================

@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host"),
    port: int = typer.Option(8080, "--port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    console.print(f"[bold green]LogChat[/bold green] listening on http://{host}:{port}")
    uvicorn.run("logchat.main:create_app", factory=True, host=host, port=port, reload=reload,
                log_level="info")


@app.command()
def config():
    """Show effective configuration and where each value came from."""
    from logchat.core.config import get_config_source, settings

    table = Table(title="LogChat Configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("Source", style="dim")

    rows = [
        ("llm.base_url", settings.llm.base_url, "LLM_BASE_URL"),
        ("llm.model_name", settings.llm.model_name, "LLM_MODEL_NAME"),
        ("embeddings.provider", settings.embeddings.provider, "EMBED_PROVIDER"),
        ("embeddings.model_name", settings.embeddings.model_name, "EMBED_MODEL_NAME"),
        ("rag.similarity_floor", settings.rag.similarity_floor, "LOGCHAT_SIMILARITY_FLOOR"),
        ("storage.db_path", settings.storage.db_path, "LOGCHAT_DB_PATH"),
        ("storage.chroma_path", settings.storage.chroma_path, "LOGCHAT_CHROMA_PATH"),
        ("auth.auth_url", settings.auth.auth_url or "-", "LOGCHAT_AUTH_URL"),
        ("auth.api_tokens", f"{len(settings.auth.api_tokens)} configured", "LOGCHAT_API_TOKENS"),
        ("cors.allowed_origins", ", ".join(settings.cors.allowed_origins), "ALLOWED_ORIGINS"),
        ("user.timezone_offset_hours", settings.user.timezone_offset_hours, "LOGCHAT_TIMEZONE_OFFSET"),
        ("features.private_mode", settings.features.private_mode, "LOGCHAT_PRIVATE_MODE"),
        ("features.external_embeddings", settings.features.external_embeddings, "ENABLE_EXTERNAL_EMBEDDINGS"),
    ]
    for key, value, env_key in rows:
        table.add_row(key, str(value), get_config_source(key, env_key))
    console.print(table)


@app.command()
def version():
    """Show LogChat version."""
    console.print(f"[bold]LogChat {__version__}[/bold]")


# =============================================================================
# Main Entry Point
# =============================================================================

def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
