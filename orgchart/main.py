from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from orgchart.api.common import reset_engine
from orgchart.config import get_log_level
from orgchart.db.store import close_entity_store

# Routers
from orgchart.api.routers.core import router as core_router
from orgchart.api.routers.transactions import router as transactions_router

logging.basicConfig(level=get_log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Ensure resources (the entity store client) are closed on shutdown."""
    try:
        yield
    finally:
        reset_engine()
        close_entity_store()


app = FastAPI(title="Government Organisation Chart", version="0.1", lifespan=lifespan)

# Register routers (paths preserved as defined in each module)
app.include_router(core_router)
app.include_router(transactions_router)
