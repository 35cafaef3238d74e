# main.py
"""
FastAPI entry point for the pantry tracker.
Startup/readiness checks against Supabase, request-id middleware, one shared
PantryServices container and a graceful shutdown of the realtime feed.
"""
import asyncio
import logging
import os
import uuid
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.cooking import router as cooking_router
from app.api.errors import register_exception_handlers
from app.api.inventory import router as inventory_router
from app.api.logs import router as logs_router
from app.api.meal_plan import router as meal_plan_router
from app.api.scan import router as scan_router
from app.config.settings import settings
from app.config.supabase import supabase_client
from app.services.pantry import PantryServices

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger("uvicorn.error")

HEALTH_CHECK_TIMEOUT = float(os.getenv("HEALTH_CHECK_TIMEOUT", "5.0"))
FAIL_ON_DB_STARTUP = os.getenv("FAIL_ON_DB_STARTUP", "false").lower() in ("1", "true", "yes")


async def _run_sync_in_executor(fn, *args, timeout: float = HEALTH_CHECK_TIMEOUT):
    """Run a blocking function in the default threadpool with a timeout."""
    loop = asyncio.get_running_loop()
    return await asyncio.wait_for(loop.run_in_executor(None, fn, *args), timeout=timeout)


async def _supabase_healthy(timeout: float = HEALTH_CHECK_TIMEOUT) -> bool:
    try:
        return bool(await _run_sync_in_executor(supabase_client.health_check, timeout=timeout))
    except asyncio.TimeoutError:
        logger.warning("Supabase health_check timed out after %.1fs", timeout)
    except Exception as exc:
        logger.exception("Unexpected error calling supabase_client.health_check: %s", exc)
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting pantry tracker...")

    app.state.supabase_healthy = await _supabase_healthy()
    logger.info("Supabase health: %s", app.state.supabase_healthy)
    if not app.state.supabase_healthy and FAIL_ON_DB_STARTUP:
        logger.error("FAIL_ON_DB_STARTUP enabled and Supabase unhealthy. Aborting startup.")
        raise RuntimeError("Supabase unhealthy on startup")

    if getattr(app.state, "services", None) is None:
        app.state.services = PantryServices()

    try:
        yield
    finally:
        logger.info("Shutting down pantry tracker...")
        try:
            await app.state.services.close()
        except Exception:
            logger.exception("Error while closing pantry services during shutdown")


app = FastAPI(
    title="Pantry Tracker",
    description="Household food inventory with cooking deductions and consumption logging",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    logger.info("→ Incoming request %s %s id=%s", request.method, request.url.path, request_id)
    try:
        response: Response = await call_next(request)
    except Exception as exc:
        logger.exception("Handler error for request id=%s: %s", request_id, exc)
        return JSONResponse({"ok": False, "status": 500, "message": "Internal server error"}, status_code=500)
    logger.info("← Completed request id=%s status=%s", request_id, getattr(response, "status_code", None))
    response.headers["X-Request-Id"] = request_id
    return response


app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(logs_router, tags=["logs"])
app.include_router(cooking_router, tags=["cooking"])
app.include_router(meal_plan_router, prefix="/meal-plan", tags=["meal-plan"])
app.include_router(scan_router, tags=["scan"])


@app.get("/")
async def root() -> Dict[str, str]:
    return {"message": "Pantry tracker is running!", "status": "healthy"}


@app.get("/health")
async def health_check():
    """Liveness; reports degraded (503) when Supabase does not answer."""
    db_ok = await _supabase_healthy()
    return JSONResponse(
        {
            "status": "healthy" if db_ok else "degraded",
            "service": "pantry-tracker",
            "database": "connected" if db_ok else "disconnected",
            "supabase": supabase_client.diagnostics(),
        },
        status_code=200 if db_ok else 503,
    )


@app.get("/ready")
async def readiness_check():
    supabase_state: Optional[bool] = getattr(app.state, "supabase_healthy", None)
    if supabase_state is None:
        supabase_state = await _supabase_healthy(timeout=2.0)

    if supabase_state:
        return JSONResponse({"ready": True, "database": "connected"}, status_code=200)
    return JSONResponse({"ready": False, "database": "disconnected"}, status_code=503)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", 5000)), reload=True)
