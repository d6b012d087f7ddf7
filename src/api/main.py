"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import get_roster_cache
from api.models.responses import ErrorCodes, ErrorResponse
from api.routes import calendar_router, health_router
from core.config import API_DEBUG, API_VERSION, DB_PATH, LOG_FORMAT, LOG_LEVEL

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Check the database on startup; drop cached users on shutdown."""
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    if DB_PATH.exists():
        logger.info("Serving workboard database %s", DB_PATH)
    else:
        logger.warning(
            "Workboard database not found at %s; run src/scripts/init_db.py first", DB_PATH
        )

    yield

    get_roster_cache().invalidate()


app = FastAPI(
    title="Workboard Timeline API",
    description="Calendar timeline of personal events, task due dates and teammate events",
    version=API_VERSION,
    debug=API_DEBUG,
    lifespan=lifespan,
)

if API_DEBUG:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Anything a route did not turn into an HTTPException becomes a 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="Internal server error",
            code=ErrorCodes.INTERNAL_ERROR,
            details=[],
        ).model_dump(),
    )


app.include_router(health_router)
app.include_router(calendar_router)


if __name__ == "__main__":
    import uvicorn

    from core.config import API_HOST, API_PORT

    uvicorn.run("api.main:app", host=API_HOST, port=API_PORT, reload=API_DEBUG)
