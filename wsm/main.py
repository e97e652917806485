"""WSM FastAPI application."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wsm.api.auth import router as auth_router
from wsm.api.health import router as health_router
from wsm.api.projects import router as projects_router
from wsm.api.tasks import router as tasks_router
from wsm.api.tenants import router as tenants_router
from wsm.api.users import router as users_router
from wsm.config import settings
from wsm.errors import (
    Conflict,
    Denied,
    LimitReached,
    NotFound,
    ServiceError,
    Unauthenticated,
    ValidationError,
)

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    ValidationError: 400,
    Unauthenticated: 401,
    Denied: 403,
    LimitReached: 403,
    NotFound: 404,
    Conflict: 409,
}

app = FastAPI(
    title="WSM - Multi-Tenant Workspace Manager",
    description="Tenant-isolated users, projects and tasks behind role-based authorization",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    reason = exc.reason.value if isinstance(exc, Denied) else None
    return JSONResponse(
        status_code=STATUS_BY_ERROR.get(type(exc), 500),
        content={"error": exc.kind, "reason": reason, "message": exc.message},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "InternalError", "reason": None, "message": "Internal server error"},
    )


app.include_router(health_router, tags=["Health"])
app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(tenants_router, prefix="/api/tenants", tags=["Tenants"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(projects_router, prefix="/api/projects", tags=["Projects"])
app.include_router(tasks_router, prefix="/api/tasks", tags=["Tasks"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"service": "WSM", "version": "0.1.0", "docs": "/docs"}
