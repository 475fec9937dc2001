"""bizforge command line."""

import asyncio

import typer
import uvicorn

from .config import get_settings
from .database import create_all, create_engine
from .logging_config import setup_logging

app = typer.Typer(name="bizforge", help="Business idea pipeline service")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),  # noqa: S104
    port: int = typer.Option(8080, help="Bind port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the API server."""
    uvicorn.run("bizforge.main:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db():
    """Create all database tables."""
    settings = get_settings()
    setup_logging(settings.service_name, settings.log_format, settings.log_level)

    async def _run() -> None:
        engine = create_engine(settings.database_url)
        try:
            await create_all(engine)
        finally:
            await engine.dispose()

    asyncio.run(_run())
    typer.echo("Database tables created")


if __name__ == "__main__":
    app()
