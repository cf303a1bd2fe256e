import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import get_settings
from .core.db import AsyncSessionLocal, Base, engine
from .core.responses import ApiError, ErrorCodes, api_error_handler, error_response
from .routes_appointments import router as appointments_router
from .routes_notifications import router as notifications_router
from .scheduling.sweep import StatusSweeper
from .seed import seed_demo_data


settings = get_settings()
app = FastAPI(title="SalonHub Backend")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(appointments_router)
app.include_router(notifications_router)

app.add_exception_handler(ApiError, api_error_handler)

status_sweeper = StatusSweeper(AsyncSessionLocal)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content=error_response(ErrorCodes.INTERNAL_ERROR, "Something went wrong"),
    )


@app.on_event("startup")
async def on_startup():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if settings.seed_demo_data:
        async with AsyncSessionLocal() as session:
            company = await seed_demo_data(session)
            logger.info("Seeded demo company %s (id=%s)", company.slug, company.id)
    if settings.status_sweep_enabled:
        status_sweeper.start()


@app.on_event("shutdown")
async def on_shutdown():
    await status_sweeper.stop()


@app.get("/health")
async def healthcheck():
    return {"ok": True}
