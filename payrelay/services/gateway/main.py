"""HTTP surface for the payment relay.

Routes decode the JSON body and hand it to `GatewayService`; classified
failures are mapped to responses by the exception handlers below. Everything
the handlers need is built once in `create_app` and kept on `app.state`.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from time import perf_counter
from typing import Any
from uuid import uuid4

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from payrelay.common.config import Settings, load_settings
from payrelay.common.logging import configure_logging, logger, trace_id_ctx
from payrelay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from payrelay.common.retry import RetryExhausted
from payrelay.common.startup import log_startup_config
from payrelay.common.tracing import setup_tracing
from payrelay.services.gateway.service import BadRequest, GatewayService, NotFound, UnexpectedResponse
from payrelay.services.square.client import ApiError, PaymentsClient, SquareClient


STARTUP_FIELDS = [
    "square_environment",
    "square_access_token",
    "square_version",
    "retry_max_attempts",
    "retry_max_elapsed_seconds",
    "static_dir",
    "tracing_enabled",
]


def get_service(request: Request) -> GatewayService:
    return request.app.state.service


async def read_json(request: Request) -> Any:
    """Decode the request body, turning undecodable input into `BadRequest`."""

    try:
        return await request.json()
    except ValueError as exc:
        raise BadRequest("Bad Request") from exc


def create_app(
    settings: Settings | None = None,
    client: PaymentsClient | None = None,
    service: GatewayService | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings)
    log_startup_config(settings, STARTUP_FIELDS)
    if service is None:
        service = GatewayService(client or SquareClient.from_settings(settings), settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        """Close the outbound HTTP client with the app."""

        yield
        await service.client.close()

    app = FastAPI(title="PayRelay", lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service
    setup_tracing(app, settings)

    @app.middleware("http")
    async def context_middleware(request: Request, call_next):
        """Tag the request with a trace id and record count/latency."""

        trace_id_ctx.set(request.headers.get("x-correlation-id") or str(uuid4()))
        start = perf_counter()
        # Static assets and unknown paths share one label to bound series count.
        route = "unmatched"
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=request.method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=request.method,
                status_code=str(status_code),
            ).inc()

    @app.exception_handler(BadRequest)
    async def handle_bad_request(_: Request, exc: BadRequest) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": "Bad Request"})

    @app.exception_handler(NotFound)
    async def handle_not_found(_: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"success": False, "detail": str(exc)})

    @app.exception_handler(ApiError)
    async def handle_api_error(_: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"success": False, "errors": exc.errors})

    @app.exception_handler(UnexpectedResponse)
    async def handle_unexpected_response(_: Request, exc: UnexpectedResponse) -> JSONResponse:
        return JSONResponse(
            status_code=502,
            content={"success": False, "detail": "unexpected response from payments platform"},
        )

    @app.exception_handler(RetryExhausted)
    async def handle_retry_exhausted(_: Request, exc: RetryExhausted) -> JSONResponse:
        logger.error("giving up on %s after %s attempt(s)", exc.operation, exc.attempts)
        return JSONResponse(
            status_code=502,
            content={"success": False, "detail": "payments platform unavailable"},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(_: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled error: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "internal server error"})

    @app.post("/cof")
    async def create_card(request: Request, svc: GatewayService = Depends(get_service)):
        """Store a card on file for a customer."""

        status_code, body = await svc.create_card(await read_json(request))
        return JSONResponse(status_code=status_code, content=body)

    @app.post("/payment")
    async def create_payment(request: Request, svc: GatewayService = Depends(get_service)):
        """Charge the server-configured amount against a card nonce."""

        status_code, body = await svc.create_payment(await read_json(request))
        return JSONResponse(status_code=status_code, content=body)

    @app.post("/searchCustomer")
    async def search_customer(request: Request, svc: GatewayService = Depends(get_service)):
        status_code, body = await svc.search_customer(await read_json(request))
        return JSONResponse(status_code=status_code, content=body)

    @app.get("/cards")
    async def list_cards(request: Request, svc: GatewayService = Depends(get_service)):
        """List a customer's cards; the customer id comes from the body or `?customerId=`."""

        payload = await read_json(request) if await request.body() else dict(request.query_params)
        status_code, body = await svc.list_cards(payload)
        return JSONResponse(status_code=status_code, content=body)

    @app.get("/health")
    def health():
        """Container health probe endpoint."""

        return {"ok": True}

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    # Mounted last so the API routes above take precedence.
    if Path(settings.static_dir).is_dir():
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    else:
        logger.info("static_dir %s not found, not serving static assets", settings.static_dir)

    return app


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "payrelay.services.gateway.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "8000")),
    )
