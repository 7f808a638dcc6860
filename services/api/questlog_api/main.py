from __future__ import annotations

import json
import time
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.exception_handlers import (
    http_exception_handler,
    request_validation_exception_handler,
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from questlog_api.core.config import Settings


def _parse_csv(value: str) -> list[str]:
    raw = str(value or "").strip()
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def create_app(*, settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="Questlog API",
        version="0.1.0",
        openapi_url="/api/openapi.json",
        docs_url="/docs",
    )

    if settings.trust_proxy_headers:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    allowed_hosts = _parse_csv(settings.allowed_hosts) or ["*"]
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)

    cors_origins = _parse_csv(settings.cors_allowed_origins)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def _request_context(request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("x-request-id") or f"req_{uuid4().hex}"
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception:  # noqa: BLE001
            if settings.log_json:
                _log_json(
                    {
                        "level": "error",
                        "request_id": request_id,
                        "method": request.method,
                        "path": request.url.path,
                        "status": 500,
                        "duration_ms": round((time.perf_counter() - start) * 1000.0, 2),
                    }
                )
            raise

        response.headers["X-Request-Id"] = request_id
        if settings.log_json:
            _log_json(
                {
                    "level": "warn" if response.status_code >= 400 else "info",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": round((time.perf_counter() - start) * 1000.0, 2),
                }
            )
        return response

    @app.exception_handler(HTTPException)
    async def _with_request_id_http_exception(request: Request, exc: HTTPException):
        resp = await http_exception_handler(request, exc)
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            resp.headers["X-Request-Id"] = str(request_id)
        return resp

    @app.exception_handler(RequestValidationError)
    async def _with_request_id_validation_error(
        request: Request, exc: RequestValidationError
    ):
        resp = await request_validation_exception_handler(request, exc)
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            resp.headers["X-Request-Id"] = str(request_id)
        return resp

    @app.exception_handler(Exception)
    async def _with_request_id_unhandled(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None)
        if settings.log_json:
            _log_json(
                {
                    "level": "error",
                    "request_id": request_id,
                    "path": request.url.path,
                    "error": type(exc).__name__,
                }
            )
        resp = JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
        if request_id:
            resp.headers["X-Request-Id"] = str(request_id)
        return resp

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    from questlog_api.routers import auth, rpg, tasks

    app.include_router(auth.router)
    app.include_router(rpg.router)
    app.include_router(tasks.router)

    return app


def _log_json(payload: dict[str, object]) -> None:
    try:
        print(json.dumps(payload, ensure_ascii=False, separators=(",", ":")))
    except Exception:  # noqa: BLE001
        pass


app = create_app()
