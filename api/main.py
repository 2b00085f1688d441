# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-19
# Description: main.py
# -----------------------------------------------------------------------------
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.dependencies import shutdown_container
from api.routers import embeddings, events, health, search
from utility.logging_utils import get_logger

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",)
logger = get_logger("api")


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info("CRM semantic search API starting")
    yield
    # let queued sync jobs finish before the process exits
    logger.info("CRM semantic search API stopping; draining sync workers")
    shutdown_container()


app = FastAPI(title="CRM Semantic Search API", lifespan=lifespan)
app.include_router(health.router)
app.include_router(search.router)
app.include_router(embeddings.router)
app.include_router(events.router)
