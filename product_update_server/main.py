import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from product_update_server.api.admin import router as admin_router
from product_update_server.api.updates import router as updates_router
from product_update_server.core.dependencies import get_refresh_poll_seconds, get_update_server
from product_update_server.domain.errors import UpdateServerError
from product_update_server.services.update_server import UpdateServer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_NAMESPACE = "/product-update-server/v1"


app = FastAPI(
    title="Product Update Server",
    version="1.0.0",
    description="Update metadata for downloadable products, gated by purchase or membership.",
)

_refresh_task: Optional[asyncio.Task] = None


def _resolve_update_server() -> UpdateServer:
    # Honour dependency overrides so tests can swap the whole server.
    provider = app.dependency_overrides.get(get_update_server, get_update_server)
    return provider()


@app.exception_handler(UpdateServerError)
async def update_server_error_handler(request: Request, exc: UpdateServerError) -> JSONResponse:
    """
    Render domain errors as {code, message, data: {status}} with the matching HTTP status.
    """
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
async def startup_event() -> None:
    """
    Build the initial index, sync the refresh schedule, and start the refresh loop.
    """
    global _refresh_task
    server = _resolve_update_server()
    await asyncio.to_thread(server.activate)

    if _refresh_task is None:
        _refresh_task = asyncio.create_task(
            server.scheduler.run_forever(poll_seconds=get_refresh_poll_seconds())
        )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    global _refresh_task
    if _refresh_task is not None:
        _refresh_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await _refresh_task
        _refresh_task = None
    _resolve_update_server().deactivate()


@app.get("/health")
async def health() -> dict:
    """
    Lightweight health check endpoint.
    """
    return {"status": "ok"}


app.include_router(updates_router, prefix=API_NAMESPACE, tags=["updates"])
app.include_router(admin_router, prefix=API_NAMESPACE, tags=["admin"])


if __name__ == "__main__":
    """
    Allow running `python -m product_update_server.main` to start the Uvicorn
    development server.
    """
    import uvicorn

    uvicorn.run(
        "product_update_server.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
