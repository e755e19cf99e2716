import hmac
import json
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core import CoverPipeline
from .errors import AuthError, CoverError, ValidationError
from .settings import RenderDefaults


logger = logging.getLogger(__name__)

COVER_ROUTE = "/api/generate-cover-image"
CACHE_CONTROL = "public, max-age=31536000, immutable"


def create_app(
    defaults: Optional[RenderDefaults] = None,
    pipeline: Optional[CoverPipeline] = None,
) -> FastAPI:
    """
    Build the HTTP app around a single `CoverPipeline`.

    `defaults` are read from the environment when omitted.
    """
    defaults = defaults or RenderDefaults.from_env()
    pipeline = pipeline or CoverPipeline(defaults=defaults)
    if not defaults.api_token:
        logger.warning("COVERGEN_API_TOKEN not set; every cover request will be rejected.")

    app = FastAPI(title="covergen", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    @app.exception_handler(CoverError)
    async def cover_error_handler(request: Request, exc: CoverError) -> JSONResponse:
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
        return JSONResponse({"error": message}, status_code=exc.status_code, headers=exc.headers)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post(COVER_ROUTE)
    async def generate_cover_image(request: Request) -> Response:
        _check_bearer(request.headers.get("authorization"), defaults.api_token)

        try:
            payload = json.loads(await request.body() or b"null")
        except ValueError as e:
            raise ValidationError("Request body must be valid JSON") from e

        try:
            image = await run_in_threadpool(pipeline.run, payload)
        except CoverError as e:
            if e.details:
                logger.warning(
                    "Cover request failed (%d): %s %s", e.status_code, e.message, e.details
                )
            else:
                logger.warning("Cover request failed (%d): %s", e.status_code, e.message)
            raise
        except Exception as e:
            logger.exception("Error generating cover image")
            raise CoverError("Internal server error") from e

        return Response(
            content=image.data,
            media_type=image.content_type,
            headers={"Cache-Control": CACHE_CONTROL},
        )

    return app


def _check_bearer(header: Optional[str], token: Optional[str]) -> None:
    if not token or not header:
        raise AuthError("Unauthorized")
    if not hmac.compare_digest(header.encode("utf-8"), f"Bearer {token}".encode("utf-8")):
        raise AuthError("Unauthorized")
