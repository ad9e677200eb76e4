import logging
import sys

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import AppError, AuthError, ValidationError
from .routers import folders as folders_router
from .routers import me as me_router
from .routers import stats as stats_router
from .routers import subtodos as subtodos_router
from .routers import todos as todos_router
from .settings import get_settings

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "Todo lifecycle: create, list, update, toggle with recurrence, trash, restore, reorder.",
    },
    {"name": "subtodos", "description": "Checklist items nested under a todo."},
    {"name": "folders", "description": "Folders grouping todos."},
    {"name": "stats", "description": "Weekly completion statistics."},
    {"name": "me", "description": "Profile name and notification preferences of the caller."},
]

_settings = get_settings()

logger = logging.getLogger(__package__)
# Package-level handler so service logs reach the console when the host configures none.
if not logger.handlers:
    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s: %(message)s"))
    logger.addHandler(_handler)
logger.setLevel(_settings.log_level)

app = FastAPI(
    title="Todo Backend",
    description="Personal todo backend: folders, todos with sub-todos, recurrence, trash and weekly statistics.",
    version="0.2.0",
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


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Map domain errors to JSON. Only the user-facing message is exposed; store
    diagnostics stay in the server log.
    """
    content = {"error": exc.error, "message": exc.message}
    if isinstance(exc, ValidationError):
        content["detail"] = exc.detail if exc.detail is not None else [{"msg": exc.message}]
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Healthy"}


# Include routers
app.include_router(todos_router.router)
app.include_router(subtodos_router.router)
app.include_router(folders_router.router)
app.include_router(stats_router.router)
app.include_router(me_router.router)
