# brewdash/api.py
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import ServiceConfig, load_env, setup_logging
from .errors import BrewDashError, ValidationError
from .service import DashboardService, check_secret, extract_secret
from .store import TankStore, connect


logger = logging.getLogger(__name__)

NO_STORE = {"Cache-Control": "no-store"}


def _json(body: Any, status_code: int = 200, headers: Optional[dict] = None) -> JSONResponse:
    h = dict(NO_STORE)
    if headers:
        h.update(headers)
    return JSONResponse(body, status_code=status_code, headers=h)


def _error(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return _json({"ok": False, "error": message}, status_code=status_code, headers=headers)


def create_app(cfg: ServiceConfig | None = None, client: Any = None) -> FastAPI:
    """
    cfg defaults to the environment. client is the redis handle; when None
    it is created on first use and kept for the life of the process.
    """
    if cfg is None:
        load_env()
        cfg = ServiceConfig.from_env()

    app = FastAPI(title="brewdash", docs_url=None, redoc_url=None)
    app.state.cfg = cfg
    app.state.client = client
    app.state.service = None

    def get_service() -> DashboardService:
        if app.state.service is None:
            if app.state.client is None:
                app.state.client = connect(cfg)
            app.state.service = DashboardService(TankStore(app.state.client, cfg), cfg)
        return app.state.service

    # ======================================================
    # Error envelope
    # ======================================================
    @app.exception_handler(BrewDashError)
    async def _brewdash_error(request: Request, exc: BrewDashError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s crashed", request.method, request.url.path)
        return _error(500, "Internal Server Error")

    # ======================================================
    # Routes
    # ======================================================
    @app.get("/healthz")
    def healthz() -> JSONResponse:
        return _json({"ok": True})

    @app.get("/api/public")
    def public() -> JSONResponse:
        return _json(get_service().public_items())

    @app.get("/api/load")
    def load(request: Request) -> JSONResponse:
        secret = extract_secret(request.headers)
        check_secret(cfg, secret)
        return _json(get_service().admin_records(secret))

    @app.post("/api/save")
    async def save(request: Request) -> JSONResponse:
        secret = extract_secret(request.headers)
        # auth before looking at the body
        check_secret(cfg, secret)

        body = await request.body()
        try:
            payload = json.loads(body or b"{}")
        except ValueError:
            raise ValidationError("Bad JSON") from None

        service = await run_in_threadpool(get_service)
        result = await run_in_threadpool(service.save_records, secret, payload)
        return _json(result)

    @app.post("/api/auth")
    def auth(request: Request) -> JSONResponse:
        secret = extract_secret(request.headers)
        check_secret(cfg, secret)
        return _json({"ok": True})

    return app


def build_default_app() -> FastAPI:
    load_env()
    cfg = ServiceConfig.from_env()
    setup_logging(cfg.log_level)
    return create_app(cfg)
