import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request

from dal.image_db import ImageDB
from routes.image_route import router as image_router
from utils.database_init import AsyncDatabaseInitializer

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize the SQLite database (at DATABASE_DIR/app.db)
    and the image store, and attach them to `app.state`.
    """
    db_initializer = AsyncDatabaseInitializer()
    await db_initializer.ensure_database()
    LOGGER.info("Image database ready at %s", db_initializer.db_path)

    app.state.db_initializer = db_initializer
    app.state.image_db = ImageDB(db_initializer)

    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that verifies the image store is attached.
        """
        has_db = hasattr(request.app.state, "image_db")
        return {"ok": True, "db_initialized": has_db}

    app.include_router(image_router)

    return app


app = create_app()
