import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .results import field_errors_from
from .routers import auth as auth_router
from .routers import projects as projects_router
from .routers import tasks as tasks_router
from .settings import get_settings

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Registration, login and the current session identity."},
    {"name": "projects", "description": "Owner-scoped projects and the dashboard summary."},
    {
        "name": "tasks",
        "description": "Task creation, edits, column moves, deletion and per-column counts.",
    },
]

_settings = get_settings()


def configure_logging(level: str) -> None:
    """Apply the configured level to the root logger once at start-up."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


configure_logging(_settings.log_level)

app = FastAPI(
    title="ProcessCraft Backend",
    description="Kanban project management API: projects, tasks and drag-and-drop column moves.",
    version="0.1.0",
    openapi_tags=openapi_tags,
)

# Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handlers for consistent JSON on validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return the shared error envelope for request validation errors.

    Response format:
        {
            "status": "error",
            "message": "Request validation failed",
            "errors": {"field": ["message", ...]}
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "status": "error",
            "message": "Request validation failed",
            "errors": field_errors_from(exc),  # type: ignore[arg-type]
        },
    )


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Healthy", "backend": _settings.persistence_backend}


# Include routers
app.include_router(auth_router.router)
app.include_router(projects_router.router)
app.include_router(projects_router.dashboard_router)
app.include_router(tasks_router.router)
