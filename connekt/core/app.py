from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from connekt.api.main import api_router
from connekt.services.blob_store import blob_store
from connekt.services.document_store import document_store

from .config import settings
from .version import __version__


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events (startup/shutdown).
    """
    logger.info(f"Starting {settings.APP_NAME} v{__version__} ({settings.APP_ENV})")
    yield
    for store in (document_store, blob_store):
        await store.close()


app = FastAPI(
    title=settings.APP_NAME,
    description="Profiles, ratings and Pro analytics for the Connekt marketplace",
    version=__version__,
    lifespan=lifespan,
    docs_url=None if settings.APP_ENV != "development" else "/docs",
    redoc_url=None if settings.APP_ENV != "development" else "/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)
