"""FastAPI application serving pool state and quotes.

Run with `dex-api` or `python -m dex.api.main`; see ServerConfig for the
environment variables it reads.
"""

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dex import __version__
from dex.api.endpoints import router
from dex.config import ServerConfig
from dex.errors import AMMError
from dex.models.api import ErrorResponse

logger = structlog.get_logger()

# Bodies above 1 MB are refused before they are read
MAX_REQUEST_SIZE = 1024 * 1024

app = FastAPI(
    title="Dual-curve DEX",
    description="Pool state and quotes for volatile and stable AMM pools",
    version=__version__,
)
app.include_router(router)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    declared = request.headers.get("content-length")
    if declared is not None:
        if not declared.isdigit():
            return JSONResponse(status_code=400, content={"detail": "Invalid Content-Length"})
        if int(declared) > MAX_REQUEST_SIZE:
            logger.warning("request_too_large", path=request.url.path, size=int(declared))
            return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


@app.exception_handler(AMMError)
async def amm_error_handler(request: Request, exc: AMMError) -> JSONResponse:
    """Engine rejections are the caller's fault: 400 with the error class name."""
    error = type(exc).__name__
    logger.warning("api_error", path=request.url.path, error=error, detail=str(exc))
    body = ErrorResponse(error=error, detail=str(exc))
    return JSONResponse(status_code=400, content=body.model_dump())


@app.get("/health")
async def health() -> dict[str, object]:
    return {"status": "ok", "version": __version__}


def run(config: ServerConfig | None = None) -> None:
    """Serve the API with uvicorn."""
    config = config or ServerConfig.from_env()
    logger.info("api_starting", host=config.host, port=config.port, reload=config.debug)
    uvicorn.run("dex.api.main:app", host=config.host, port=config.port, reload=config.debug)


if __name__ == "__main__":
    run()
