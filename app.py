# app.py
import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
import uvicorn

import routing
from chains.solana_rpc import SolanaRpcClient
from config import Settings, load_settings
from core.handlers import ServiceResponse, TransactionService
from storage.supabase_store import build_store

log = logging.getLogger("solana_watcher.app")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def _json(body: Optional[Dict[str, Any]], status: int) -> Response:
    return JSONResponse(content=body, status_code=status)


def _to_response(res: ServiceResponse) -> Response:
    return _json(res.body, res.status)


def create_app(service: TransactionService, function_name: str = routing.DEFAULT_FUNCTION_NAME) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        c = service.criteria
        log.info(
            "Solana transaction handler started. Monitoring %s for address: %s (store: %s)",
            c.asset.label() if c.asset else "N/A",
            c.address or "N/A",
            "on" if service.store is not None else "off",
        )
        yield

    # no /docs or /openapi.json: every path goes through the dispatcher
    app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.service = service

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.api_route("/{path:path}", methods=ALL_METHODS)
    async def dispatch(request: Request, path: str):
        route = routing.resolve(request.method, request.url.path, function_name)
        log.debug("Router: %s %s -> %s", request.method, request.url.path, route)

        try:
            if route.name == routing.PREFLIGHT:
                return Response(status_code=204)

            if route.name == routing.HEALTH:
                return _json({"ok": True}, 200)

            if route.name == routing.WEBHOOK:
                raw = await request.body()
                try:
                    payload = json.loads(raw)
                except ValueError as e:
                    log.error("Webhook: error parsing JSON body: %s", e)
                    return _json({"error": "Invalid JSON payload"}, 400)
                # requests-based I/O; keep it off the event loop
                res = await asyncio.to_thread(service.ingest_webhook, payload)
                return _to_response(res)

            if route.name == routing.TRANSACTION:
                res = await asyncio.to_thread(service.query_signature, route.signature)
                return _to_response(res)

            if route.name == routing.MISSING_SIGNATURE:
                return _json({"error": "Signature is required after /transaction/"}, 400)

            log.warning("Router: no route matched for %s %s", request.method, request.url.path)
            return _json({"error": routing.available_routes_message(function_name)}, 404)

        except Exception:
            log.exception("Unhandled application error on %s %s", request.method, request.url.path)
            return _json({"error": "Internal Server Error"}, 500)

    return app


def build_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ledger = SolanaRpcClient(settings.solana_rpc_url, timeout=settings.rpc_timeout)
    store = None
    if settings.uses_store:
        store = build_store(settings.supabase_url, settings.supabase_service_key, timeout=settings.rpc_timeout)

    service = TransactionService(ledger, settings.criteria, store=store)
    return create_app(service, function_name=settings.function_name)


if __name__ == "__main__":
    s = load_settings()
    uvicorn.run(build_app(s), host="0.0.0.0", port=s.port)
