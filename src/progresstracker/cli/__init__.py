"""CLI commands using Typer."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from progresstracker.config import settings

console = Console()
app = typer.Typer(name="progresstracker", help="Progress Tracker CLI")


@app.command()
def version():
    """Show version information."""
    from progresstracker import __version__

    typer.echo(f"Progress Tracker v{__version__}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(settings.port, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
):
    """Run the API server."""
    import uvicorn

    from progresstracker.logging import get_uvicorn_log_config

    uvicorn.run(
        "progresstracker.main:app",
        host=host,
        port=port,
        reload=reload,
        log_config=get_uvicorn_log_config(),
    )


@app.command("issue-token")
def issue_token(
    email: str = typer.Argument(..., help="Email to issue a token for"),
):
    """Mint a bearer token for an email without going through OTP.

    Resolves the email's user id in the configured cache, so the token
    matches what a real login would produce.
    """
    from progresstracker.services.container import create_container

    async def _issue() -> tuple[str, str]:
        container = await create_container(settings)
        try:
            user_id = await container.identity.resolve(email)
            return user_id, container.tokens.issue(user_id, email.strip().lower())
        finally:
            await container.aclose()

    user_id, token = asyncio.run(_issue())

    table = Table(title="Bearer token")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green", overflow="fold")
    table.add_row("Email", email)
    table.add_row("User ID", user_id)
    table.add_row("Expires in", f"{settings.jwt_expires_in_seconds}s")
    table.add_row("Token", token)
    console.print(table)

    if settings.redis_url is None:
        console.print(
            "[yellow]REDIS_URL is not set; this user id only exists in this process.[/yellow]"
        )


if __name__ == "__main__":
    app()
