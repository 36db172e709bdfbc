"""
Policy Intake CLI - Command-line interface.

Run the API server and manage stored policy documents from the terminal.
"""

from typing import Optional

import typer
from dotenv import find_dotenv, load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from policy_intake.artifacts.models import format_megabytes
from policy_intake.artifacts.storage import ArtifactStore
from policy_intake.config import Settings
from policy_intake.core.exceptions import ArtifactNotFoundError, StorageUnavailableError
from policy_intake.recipients.resolver import RecipientResolver
from policy_intake.version import __version__

app = typer.Typer(
    name="policy-intake",
    help="Policy Intake - policy document upload and notification service",
    no_args_is_help=True,
)
console = Console()


def _load_settings() -> Settings:
    """Read .env from the working directory, then the environment."""
    load_dotenv(find_dotenv(usecwd=True))
    return Settings.from_env()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(3000, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the HTTP API under uvicorn."""
    import uvicorn

    settings = _load_settings()
    console.print(
        Panel.fit(
            f"[bold blue]Policy Intake[/bold blue] v{__version__}\n"
            f"Listening: http://{host}:{port}\n"
            f"Upload directory: {settings.upload_dir}",
        )
    )
    missing = settings.missing_settings()
    if missing:
        console.print(f"[yellow]Missing configuration:[/yellow] {', '.join(missing)}")

    uvicorn.run(
        "policy_intake.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command("list")
def list_files():
    """List stored documents, newest first."""
    settings = _load_settings()
    store = ArtifactStore(settings.upload_dir)

    try:
        artifacts = store.list()
    except StorageUnavailableError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if not artifacts:
        console.print("[yellow]No stored documents[/yellow]")
        return

    table = Table(title=f"Stored Documents ({len(artifacts)})")
    table.add_column("File", style="cyan")
    table.add_column("Policy ID", style="magenta")
    table.add_column("Size (MB)", justify="right")
    table.add_column("Uploaded", style="green")

    for artifact in artifacts:
        table.add_row(
            artifact.storage_key,
            artifact.policy_id,
            artifact.size_mb,
            artifact.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)
    console.print(f"\nTotal size: {format_megabytes(sum(a.size_bytes for a in artifacts))} MB")


@app.command()
def latest(
    policy_id: str = typer.Argument(..., help="Policy ID to resolve"),
):
    """Show the current document of a policy ID."""
    settings = _load_settings()
    store = ArtifactStore(settings.upload_dir)

    try:
        artifact = store.resolve_latest(policy_id)
    except ArtifactNotFoundError:
        console.print(f"[red]No file found for policy ID: {policy_id}[/red]")
        raise typer.Exit(1)

    console.print(f"[cyan]{artifact.storage_key}[/cyan]")
    console.print(f"Size: {artifact.size_mb} MB ({artifact.size_bytes:,} bytes)")
    console.print(f"Uploaded: {artifact.created_at.isoformat()}")
    console.print(f"Download URL: {settings.download_url(artifact.policy_id)}")


@app.command()
def delete(
    filename: str = typer.Argument(..., help="Stored file name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete one stored document."""
    settings = _load_settings()
    store = ArtifactStore(settings.upload_dir)

    if not yes and not typer.confirm(f"Delete {filename}?"):
        raise typer.Exit(0)

    try:
        store.delete(filename)
    except ArtifactNotFoundError:
        console.print(f"[red]File not found: {filename}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Deleted:[/green] {filename}")


@app.command()
def recipients():
    """Resolve the notification recipients."""
    settings = _load_settings()
    resolver = RecipientResolver(settings)
    try:
        addresses = resolver.resolve()
    finally:
        resolver.close()

    if not resolver.is_configured:
        console.print("[yellow]Recipient directory not configured, using fallback[/yellow]")
    for address in addresses:
        console.print(address)


@app.command()
def version():
    """Show version information."""
    console.print(f"Policy Intake v{__version__}")


if __name__ == "__main__":
    app()
