from __future__ import annotations

from fastapi import FastAPI

from app.api.router import api_router
from app.config import ImportSettings, get_import_settings
from app.db.session import Database
from app.logging_config import setup_logging


def create_app(database_url: str | None = None, settings: ImportSettings | None = None) -> FastAPI:
    setup_logging()
    app = FastAPI(title="Site Import API", version="1.0.0")

    # Pipeline limits and toggles, handed to each request explicitly.
    app.state.settings = settings or get_import_settings()

    # Database (SQLite by default)
    app.state.db = Database.from_url(database_url)
    app.state.db.create_tables()

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
