"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from prefsync.api import handler as api_handler
from prefsync.api.handler import router as api_router
from prefsync.config import Settings
from prefsync.share.codec import ShareCodec
from prefsync.share.starter_index import load_starter_index

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # The starter index is built once and never mutated
    index = load_starter_index(settings.starter_pack_path or None)
    codec = ShareCodec(index, settings.pack_id)

    # Inject dependencies into the API handler
    api_handler.configure(settings, codec)

    logger.info("Preference sync server started (pack %s)", settings.pack_id)
    yield
    logger.info("Preference sync server stopped")


app = FastAPI(title="Preference Set Sync", lifespan=lifespan)
app.include_router(api_router)


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "prefsync.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
