import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from database import create_tables
from roundrobin.router import get_store, router as roundrobin_router
from roundrobin.store import MemoryStore

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# "database" (default) or "memory" for a single process without PostgreSQL
STORE_BACKEND = os.getenv("STORE_BACKEND", "database").lower()


def create_app(store_backend: str = STORE_BACKEND) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if store_backend == "memory":
            logger.info("Keeping tournaments in memory")
        else:
            await create_tables()
            logger.info("Database tables ready")
        yield

    app = FastAPI(title="Round Robin", lifespan=lifespan)
    app.include_router(roundrobin_router)

    if store_backend == "memory":
        memory_store = MemoryStore()
        app.dependency_overrides[get_store] = lambda: memory_store

    @app.get("/")
    async def index():
        return RedirectResponse("/roundrobin/", status_code=303)

    return app


app = create_app()
