from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.routing import APIRouter
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from andromeda_copilot.agent_runtime.log import setup_logging
from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceManager
from andromeda_copilot.agent_runtime.models.api import HealthResponse
from andromeda_copilot.agent_runtime.registry import SessionRegistry
from andromeda_copilot.agent_runtime.settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("Copilot server starting (host={}, port={})", settings.host, settings.port)
    if not settings.resolve_api_key():
        logger.warning("OPENAI_API_KEY not set -- chat will answer in demo mode")

    workspaces = WorkspaceManager(settings.registry_root)
    logger.info("Workspace registry: {} ({} workspaces)", workspaces.root, len(workspaces.list_workspaces()))

    _app.state.settings = settings
    _app.state.workspaces = workspaces
    _app.state.sessions = SessionRegistry(settings, workspaces)
    _app.state.web_dir = Path(settings.web_dir)

    yield

    # -- Shutdown --------------------------------------------------------------
    dropped = _app.state.sessions.clear()
    logger.info("Copilot server shutting down (dropped_sessions={})", dropped)


app = FastAPI(title="Andromeda Copilot", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error envelope -- every error body is ``{"error": message}``
# ---------------------------------------------------------------------------


@app.exception_handler(StarletteHTTPException)
async def http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse({"error": message}, status_code=400)


# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(timestamp=datetime.now(UTC))


from andromeda_copilot.agent_runtime.routers.chat import router as chat_router  # noqa: E402
from andromeda_copilot.agent_runtime.routers.sessions import router as sessions_router  # noqa: E402
from andromeda_copilot.agent_runtime.routers.workspaces import router as workspaces_router  # noqa: E402

api.include_router(chat_router)
api.include_router(sessions_router)
api.include_router(workspaces_router)

app.include_router(api)


# ---------------------------------------------------------------------------
# Static web client
# Served from settings.web_dir (the bundled ``andromeda_copilot/web`` by
# default).  Override with ANDROMEDA_WEB_DIR.
# ---------------------------------------------------------------------------


def _web_root(request: Request) -> Path:
    web_dir = getattr(request.app.state, "web_dir", None)
    return Path(web_dir if web_dir is not None else get_settings().web_dir).resolve()


@app.get("/{full_path:path}", include_in_schema=False)
async def serve_static(full_path: str, request: Request) -> FileResponse:
    """Serve a file from the web root; ``/`` maps to ``index.html``."""
    root = _web_root(request)
    file_path = (root / (full_path or "index.html")).resolve()
    if not file_path.is_relative_to(root) or not file_path.is_file():
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(file_path)
