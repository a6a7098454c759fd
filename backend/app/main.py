"""
GitDesk API application.

Routers:
    /api/repositories   repository registry (owner scoped)
    /api/git            git operations on a repository's working copy
    /ws                 dashboard events
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.database import init_db
from app.routers import git, repositories
from app.services.git import workspace_locks
from app.services.websocket import manager

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Seconds of client silence before a ping is sent
WEBSOCKET_KEEPALIVE = 30.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    from app.database import engine

    await init_db()
    workspace_root = Path(settings.workspace_root).resolve()
    workspace_root.mkdir(parents=True, exist_ok=True)
    logger.info(f"{settings.app_name} started, working copies under {workspace_root}")
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Web based git repository manager",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(repositories.router)
app.include_router(git.router)


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "app": settings.app_name,
        "busy_workspaces": len(workspace_locks.get_active_locks()),
    }


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.app_name}", "docs": "/docs"}


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    """Drain client frames until it goes away, pinging when it is quiet."""
    while True:
        try:
            message = await asyncio.wait_for(websocket.receive(), timeout=WEBSOCKET_KEEPALIVE)
        except asyncio.TimeoutError:
            await websocket.send_json({"type": "ping"})
            continue
        if message["type"] == "websocket.disconnect":
            return


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await manager.connect(websocket)
    try:
        await _wait_for_disconnect(websocket)
    except (WebSocketDisconnect, RuntimeError, asyncio.CancelledError):
        # Client vanished mid-send or the server is shutting down
        pass
    finally:
        manager.disconnect(websocket)
