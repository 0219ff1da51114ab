"""
Command Line Interface for the Content Registry.
"""

import base64
import binascii
import shutil
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import get_settings
from ..core.artifact import EncryptedArtifact
from ..core.coordinator import RegistrationCoordinator
from ..core.encrypter import get_encrypter
from ..core.pipeline import PublicationPipeline
from ..db.base import get_session_local, init_database
from ..errors import RegistryError
from ..logging_config import configure_logging
from ..storage import create_blob_store

app = typer.Typer(help="Content Registry - encrypted publication artifacts")
console = Console()


def _fail(error: RegistryError) -> None:
    console.print(f"❌ {error.code}: {error.message}", style="bold red")
    raise typer.Exit(code=1)


@app.callback()
def main() -> None:
    configure_logging(get_settings())


@app.command()
def serve(
    port: Optional[int] = typer.Option(None, help="Port to run the API server on"),
    host: Optional[str] = typer.Option(None, help="Host to bind the server to"),
    dev: bool = typer.Option(False, help="Run in development mode (auto reload)"),
):
    """Start the HTTP API."""
    from ..main import run

    rprint(Panel.fit("Starting Content Registry", style="bold blue"))
    run(host=host, port=port, reload=dev or None)


@app.command("init-db")
def init_db():
    """Create the catalog tables."""
    init_database()
    console.print("✅ Database initialized")


@app.command()
def register(
    content_id: str = typer.Argument(..., help="Artifact id"),
    output: Path = typer.Argument(..., help="Encrypted file to register"),
    key: str = typer.Option(..., help="Content key, base64"),
    disposition: Optional[str] = typer.Option(None, help="Display filename"),
    size: Optional[int] = typer.Option(None, help="Size of the encrypted file"),
    checksum: Optional[str] = typer.Option(None, help="sha256 of the encrypted file"),
):
    """Register the result of an external encryption."""
    try:
        content_key = base64.b64decode(key, validate=True)
    except (binascii.Error, ValueError):
        console.print("❌ --key must be base64", style="bold red")
        raise typer.Exit(code=2)

    settings = get_settings()
    artifact = EncryptedArtifact(
        content_key=content_key,
        path=output,
        location=disposition,
        length=size,
        sha256=checksum,
    )
    db = get_session_local()()
    try:
        coordinator = RegistrationCoordinator(db, create_blob_store(settings.blob_storage_uri))
        outcome = coordinator.register_artifact(content_id, artifact)
    except RegistryError as e:
        _fail(e)
    finally:
        db.close()

    console.print(f"✅ {content_id} {outcome.value} ({outcome.status_code})")


@app.command()
def fetch(
    content_id: str = typer.Argument(..., help="Artifact id"),
    destination: Path = typer.Argument(..., help="Where to write the encrypted bytes"),
):
    """Copy a registered artifact out of the blob store."""
    settings = get_settings()
    db = get_session_local()()
    try:
        coordinator = RegistrationCoordinator(db, create_blob_store(settings.blob_storage_uri))
        with coordinator.fetch_artifact(content_id) as fetched:
            with open(destination, "wb") as out:
                shutil.copyfileobj(fetched.stream, out)
            location = fetched.record.location
    except RegistryError as e:
        _fail(e)
    finally:
        db.close()

    console.print(f"✅ Wrote {content_id} ({location or 'no disposition'}) to {destination}")


@app.command("list-contents")
def list_contents():
    """Show every registered content record."""
    settings = get_settings()
    db = get_session_local()()
    try:
        coordinator = RegistrationCoordinator(db, create_blob_store(settings.blob_storage_uri))
        contents = coordinator.list_contents()
    except RegistryError as e:
        _fail(e)
    finally:
        db.close()

    table = Table(title="Contents", show_header=True, header_style="bold magenta")
    table.add_column("Id", style="cyan")
    table.add_column("Location")
    table.add_column("Length", justify="right")
    table.add_column("sha256")

    for content in contents:
        table.add_row(
            content.id,
            content.location or "-",
            str(content.length) if content.length >= 0 else "unknown",
            content.sha256 or "unknown",
        )

    console.print(table)


@app.command()
def publish(
    master_filename: str = typer.Argument(..., help="File in the master repository"),
    title: str = typer.Argument(..., help="Publication title"),
    content_id: Optional[str] = typer.Option(None, help="Artifact id (generated if omitted)"),
):
    """Encrypt a master file, register it and create the publication."""
    settings = get_settings()
    db = get_session_local()()
    try:
        pipeline = PublicationPipeline(
            db,
            create_blob_store(settings.blob_storage_uri),
            get_encrypter(settings),
            settings,
        )
        publication = pipeline.create_publication(
            master_filename, title, content_id=content_id
        )
        publication_id = publication.id
    except RegistryError as e:
        _fail(e)
    finally:
        db.close()

    console.print(f"✅ Publication {publication_id} created: {title}")


if __name__ == "__main__":
    app()
