import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from plexport.config import configure_logging, get_settings
from plexport.errors import PlexportError, PlexUpstreamError
from plexport.routers import auth_router, media_router

settings = get_settings()
configure_logging(settings)

logger = logging.getLogger(__name__)

app = FastAPI(title="PlExport API", version="0.1.0")

ALLOWED_ORIGINS = settings.allowed_origins


def _cors_headers(request: Request) -> dict[str, str]:
    origin = request.headers.get("origin", "")
    if origin in ALLOWED_ORIGINS or "*" in ALLOWED_ORIGINS:
        return {
            "Access-Control-Allow-Origin": origin or "*",
            "Access-Control-Allow-Credentials": "true",
            "Access-Control-Allow-Methods": "*",
            "Access-Control-Allow-Headers": "*",
            "Access-Control-Expose-Headers": "Content-Disposition",
        }
    return {}


class CORSMiddleware(BaseHTTPMiddleware):
    """Custom CORS middleware that adds headers to all responses including errors."""

    async def dispatch(self, request: Request, call_next) -> Response:
        # Handle preflight requests
        if request.method == "OPTIONS":
            response = Response(status_code=204)
        else:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception("Unhandled error on %s %s", request.method, request.url.path)
                response = JSONResponse(
                    status_code=500,
                    content={"error": "Internal server error"},
                )

        response.headers.update(_cors_headers(request))
        return response


app.add_middleware(CORSMiddleware)


@app.exception_handler(PlexportError)
async def plexport_error_handler(request: Request, exc: PlexportError) -> JSONResponse:
    """Map typed service errors to status codes without leaking upstream detail."""
    if isinstance(exc, PlexUpstreamError):
        logger.error("Upstream failure on %s: %s", request.url.path, exc)
    else:
        logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.public_message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests as 400 with the offending fields."""
    fields = [".".join(str(part) for part in err["loc"] if part != "body") for err in exc.errors()]
    message = f"Invalid request: {', '.join(f for f in fields if f) or 'body'}"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=exc.headers,
    )


# Include routers
app.include_router(auth_router)
app.include_router(media_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}
