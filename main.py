"""Main entrypoint and application factory for the statement ingest service.

This module initializes the FastAPI application, configures logging, creates the ledger tables,
and exposes the Scalar API reference endpoint for interactive OpenAPI documentation. It also
includes the main entrypoint for running the app with Uvicorn.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from scalar_fastapi import get_scalar_api_reference
from sqlalchemy.exc import SQLAlchemyError

from app.api.routes import router
from app.core.db import get_engine, init_db
from app.core.settings import get_settings
from app.core.utils import LOGGER_ROOT, get_logger


# --- Logging Setup ---
def setup_logging() -> None:
    """Configure console logging and add a persistent log file."""
    logger = get_logger(LOGGER_ROOT)
    log_path = Path(get_settings().log_file)
    # File handler for persistent logs (not colorized)
    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(file_handler)


setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan event handler to create the ledger tables using SQLAlchemy."""
    _ = app  # Silence unused argument warning
    settings = get_settings()
    try:
        init_db(get_engine(settings.database_url))
    except SQLAlchemyError:
        get_logger(f"{LOGGER_ROOT}.startup").exception("Failed to create ledger tables")
        raise
    yield


app = FastAPI(
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    title="Statement Ingest API",
    description="""
    The Statement Ingest API turns uploaded bank statements into ledger records.

    **Endpoints:**
    - `POST /events`: Receive an upload notification and process the referenced statements.
    - `GET /health`: Health check endpoint.
    - `GET /scalar`: Interactive Scalar OpenAPI documentation.
    """,
    version="1.0.0",
)
app.include_router(router)


@app.get("/scalar", include_in_schema=False)
async def scalar_docs() -> HTMLResponse:
    """Return Scalar API reference."""
    return get_scalar_api_reference(openapi_url=app.openapi_url, title=app.title)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.server_host, port=settings.server_port, reload=True)
