import asyncio
import json
import typer
import logging
import sys
from pathlib import Path
if sys.platform == "win32":
    # ProactorEventLoop по умолчанию в Windows не дружит с asyncpg
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
from study_access_client.config import get_settings
from study_access_client import create_access_client
from study_access_client.exceptions import AccessClientError, PartialPropagationError
from study_access_client.logging import configure
from study_access_client.models import RequestContext, UpdateRequest
from study_access_client.utils.cli_utils import get_rich_console, read_json_file

from study_access_client.db.base import Base
import study_access_client.db  # noqa: F401  регистрирует все таблицы в Base.metadata
from sqlalchemy.ext.asyncio import create_async_engine


app = typer.Typer(help="CLI for study-access-client management.")
logger = logging.getLogger(__name__)
console = get_rich_console()


@app.callback()
def main(log_level: str = typer.Option(None, "--log-level", help="Overrides LOG_LEVEL")):
    configure(log_level)


@app.command()
def init():
    """
    Creates all PostgreSQL tables (studies, permissions, environments, locks, audit).
    """
    console.rule("[bold cyan]Service Initialization[/bold cyan]")

    with console.status("Creating PostgreSQL tables...", spinner="dots"):
        async def _create_tables():
            try:
                settings = get_settings()
                engine = create_async_engine(settings.postgres.get_pg_dsn())
                async with engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
                await engine.dispose()
                console.log("[bold green]✔[/bold green] Database tables created successfully.")
            except Exception as e:
                console.log(f"[bold red]✖[/bold red] Database initialization FAILED: {e}")
                raise typer.Exit(code=1)

        asyncio.run(_create_tables())

    console.print("\n[bold green]✅ All services initialized successfully![/bold green]")


@app.command()
def check():
    """Checks connectivity to PostgreSQL and AWS."""
    console.rule("[bold cyan]Connection Check[/bold cyan]")

    async def _check():
        client = create_access_client()
        try:
            statuses = await client.check_connections()
        finally:
            await client.aclose()

        for name, label in (("postgres", "PostgreSQL"), ("aws", "AWS")):
            status = statuses.get(name, "unknown error")
            if status.startswith("ok"):
                console.print(f"[bold green]✔[/bold green] {label} connection: {status}")
            else:
                console.print(f"[bold red]✖[/bold red] {label} connection: FAILED ({status})")

    asyncio.run(_check())


@app.command("show-permissions")
def show_permissions(study_id: str):
    """Prints the permission record of a study as JSON."""
    async def _show():
        client = create_access_client()
        try:
            study = await client.get_study_permissions(RequestContext(uid="cli", is_admin=True), study_id)
        except AccessClientError as e:
            console.print(f"[bold red]✖[/bold red] {e}")
            raise typer.Exit(code=1)
        finally:
            await client.aclose()
        typer.echo(json.dumps(study.to_response(), indent=2, ensure_ascii=False))

    asyncio.run(_show())


@app.command("update-permissions")
def update_permissions(
    study_id: str,
    request: Path = typer.Option(..., "--request", exists=True, dir_okay=False, help="JSON file with usersToAdd / usersToRemove"),
    as_user: str = typer.Option(..., "--as-user", help="uid of the caller"),
    admin: bool = typer.Option(False, "--admin", help="Call as an application admin"),
):
    """Updates study permissions and propagates them to every impacted workspace."""
    update_request = UpdateRequest.model_validate(read_json_file(request))
    ctx = RequestContext(uid=as_user, is_admin=admin)

    async def _update():
        client = create_access_client()
        try:
            with console.status(f"Updating permissions of study '{study_id}'...", spinner="dots"):
                study = await client.update_permissions(ctx, study_id, update_request)
        except PartialPropagationError as e:
            console.print(f"[bold yellow]![/bold yellow] {e}")
            for failure in e.failures:
                console.print(f"  - {failure['environment_id']}: {failure['reason']}")
            raise typer.Exit(code=2)
        except AccessClientError as e:
            console.print(f"[bold red]✖[/bold red] {e}")
            raise typer.Exit(code=1)
        finally:
            await client.aclose()
        console.print("[bold green]✔[/bold green] Permissions updated.")
        typer.echo(json.dumps(study.to_response(), indent=2, ensure_ascii=False))

    asyncio.run(_update())


if __name__ == "__main__":
    app()
