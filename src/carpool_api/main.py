"""
FastAPI application entrypoint for the carpool backend.

Provides:
- Health check
- Ride search (/api/rides/search)
- Authentication (/api/auth/*) and current user profile (/api/users/me)
- Vehicles (/api/vehicles) and ride publishing/booking (/api/rides/*)

Configuration: see carpool_api.settings (DATABASE_URL and JWT_SECRET_KEY are
required).
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from carpool_api import settings
from carpool_api.db import init_db
from carpool_api.routers import auth as auth_router
from carpool_api.routers import rides as rides_router
from carpool_api.routers import search as search_router
from carpool_api.routers import users as users_router
from carpool_api.routers import vehicles as vehicles_router
from carpool_api.schemas.search import SearchStatus

API_PREFIX = "/api"

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Health and readiness endpoints."},
    {"name": "search", "description": "Ride search with filters, ordering and future suggestions."},
    {"name": "auth", "description": "Registration and login endpoints."},
    {"name": "users", "description": "User profile endpoints."},
    {"name": "vehicles", "description": "Driver vehicle endpoints."},
    {"name": "rides", "description": "Ride publishing, booking and cancellation endpoints."},
]


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        init_db()
    yield


app = FastAPI(
    title="Carpool Backend",
    description="Backend API for the carpooling marketplace (drivers & passengers).",
    version="0.1.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Search answers malformed parameters with its own status vocabulary
    (400 + INVALID_REQUEST); every other endpoint keeps FastAPI's 422.
    """
    if request.url.path == API_PREFIX + search_router.SEARCH_PATH:
        logger.info("Malformed search parameters: %s", exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "status": SearchStatus.INVALID_REQUEST.value,
                "rides": [],
                "errors": jsonable_encoder(exc.errors()),
            },
        )
    return await request_validation_exception_handler(request, exc)


# Search first: its static path must win over /rides/{ride_id}.
app.include_router(search_router.router, prefix=API_PREFIX)
app.include_router(auth_router.router, prefix=API_PREFIX)
app.include_router(users_router.router, prefix=API_PREFIX)
app.include_router(vehicles_router.router, prefix=API_PREFIX)
app.include_router(rides_router.router, prefix=API_PREFIX)


@app.get(
    "/",
    tags=["health"],
    summary="Health check",
    description="Simple health check endpoint.",
    operation_id="health_check",
)
def health_check():
    """Return a simple health response."""
    return {"message": "Healthy"}
