import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import seed
from auth import router as auth_router
from bookings import cleanup
from bookings import router as bookings_router
from cars import router as cars_router
from core import db
from core.config import env_bool, env_list
from core.logging_config import configure_logging

configure_logging()


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Initialize the DB pool once per process.
    await db.init_pool()

    cleanup_task: asyncio.Task | None = None
    try:
        if env_bool("SEED_DEMO_DATA", False):
            await seed.seed_demo_data()
        if cleanup.cleanup_enabled():
            cleanup_task = asyncio.create_task(cleanup.cleanup_loop(), name="booking-cleanup")
        yield
    finally:
        if cleanup_task is not None:
            cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await cleanup_task
        await db.close_pool()


app = FastAPI(title="car-booking api", lifespan=lifespan)

# Allow local frontend dev server to call this API from the browser.
app.add_middleware(
    CORSMiddleware,
    allow_origins=env_list(
        "CORS_ORIGINS",
        [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
    ),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router.router, tags=["auth"])
app.include_router(cars_router.router, tags=["cars"])
app.include_router(bookings_router.router, tags=["bookings"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "car-booking api"}
