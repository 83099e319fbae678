"""HTTP endpoints for captions, metrics, health and control actions."""

import logging
import threading
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from uvicorn.config import LOGGING_CONFIG

from livecaption.backend.application.caption_board import CaptionBoard
from livecaption.backend.runtime.metrics import Metrics
from livecaption.errors import (
    CaptionError,
    ErrorCode,
    ModelLoadFailure,
    http_payload_for,
    http_status_for,
)
from livecaption.model.registry import ModelRegistry
from livecaption.utils.logger import LOGGER

_ACCESS_LOG_IGNORED_PATHS = frozenset({"/metrics", "/metrics.json", "/health", "/captions"})


class WorkerControl(Protocol):
    @property
    def is_running(self) -> bool: ...

    @property
    def model_name(self) -> str: ...

    def clear(self) -> None: ...

    def set_model(self, name: str) -> None: ...


class _AccessLogPathFilter(logging.Filter):
    """Filter out noisy access logs for polled endpoints."""

    def __init__(self, ignored_paths: Tuple[str, ...]) -> None:
        super().__init__()
        self._ignored_paths = set(ignored_paths)

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, tuple) and len(record.args) >= 3:
            path = record.args[2]
            if path in self._ignored_paths:
                return False
        return True


def _build_uvicorn_log_config() -> Dict[str, Any]:
    log_config = deepcopy(LOGGING_CONFIG)
    log_config.setdefault("filters", {})
    log_config["filters"]["ignore_polled_endpoints"] = {
        "()": _AccessLogPathFilter,
        "ignored_paths": tuple(sorted(_ACCESS_LOG_IGNORED_PATHS)),
    }
    access_handler = log_config["handlers"].get("access", {})
    access_filters = access_handler.get("filters", [])
    access_handler["filters"] = [*access_filters, "ignore_polled_endpoints"]
    log_config["handlers"]["access"] = access_handler
    return log_config


class SetModelRequest(BaseModel):
    """Request body for the model switch endpoint."""

    name: str


@dataclass
class HttpServerHandle:
    """Handle for the background HTTP server thread."""

    server: uvicorn.Server
    thread: threading.Thread

    def stop(self, timeout: Optional[float] = None) -> None:
        if self.thread.is_alive():
            self.server.should_exit = True
            self.thread.join(timeout=timeout)


def _sanitize_metric_name(value: str) -> str:
    sanitized = []
    for idx, ch in enumerate(value):
        if ch.isalnum() or ch == "_":
            sanitized.append(ch)
        else:
            sanitized.append("_")
        if idx == 0 and sanitized[-1].isdigit():
            sanitized.insert(0, "m")
    return "".join(sanitized) or "metric"


def _flatten_metrics(payload: Dict[str, Any]) -> Dict[str, float]:
    flat: Dict[str, float] = {}
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, (int, float, bool)):
            flat[_sanitize_metric_name(key)] = float(value)
        elif isinstance(value, dict):
            for sub_key, sub_val in value.items():
                if isinstance(sub_val, (int, float, bool)):
                    metric_key = _sanitize_metric_name(f"{key}_{sub_key}")
                    flat[metric_key] = float(sub_val)
    return flat


def prometheus_text(payload: Dict[str, Any]) -> str:
    """Render a metrics payload as Prometheus gauges."""
    flat = _flatten_metrics(payload)
    lines: List[str] = []
    for key in sorted(flat.keys()):
        metric_name = f"livecaption_{key}"
        lines.append(f"# HELP {metric_name} Caption metric '{key}' exposed as a gauge.")
        lines.append(f"# TYPE {metric_name} gauge")
        lines.append(f"{metric_name} {flat[key]}")
    return "\n".join(lines) + "\n"


def build_http_app(
    worker: WorkerControl,
    board: CaptionBoard,
    metrics: Metrics,
    registry: ModelRegistry,
) -> FastAPI:
    """Create the FastAPI app exposing caption state and control actions."""
    app = FastAPI(title="livecaption")

    @app.exception_handler(CaptionError)
    async def caption_error_handler(_request: Request, exc: CaptionError) -> JSONResponse:
        return JSONResponse(
            http_payload_for(exc.code, exc.detail),
            status_code=http_status_for(exc.code),
        )

    @app.get("/metrics")
    def metrics_endpoint() -> Response:
        text = prometheus_text(metrics.render())
        return Response(content=text, media_type="text/plain; version=0.0.4")

    @app.get("/metrics.json")
    def metrics_json_endpoint() -> JSONResponse:
        return JSONResponse(metrics.render(), status_code=200)

    @app.get("/health")
    def health_endpoint() -> JSONResponse:
        running = worker.is_running
        payload = {
            "status": "ok" if running else "error",
            "worker_running": running,
            "model": worker.model_name,
        }
        return JSONResponse(payload, status_code=200 if running else 503)

    @app.get("/captions")
    def captions_endpoint() -> JSONResponse:
        payload = board.snapshot()
        payload["model"] = worker.model_name
        return JSONResponse(payload)

    @app.get("/models")
    def models_endpoint() -> JSONResponse:
        return JSONResponse({"models": registry.describe(), "active": worker.model_name})

    @app.post("/control/clear")
    def clear_endpoint() -> JSONResponse:
        worker.clear()
        board.clear()
        return JSONResponse({"status": "cleared"})

    @app.post("/control/model")
    def set_model_endpoint(req: SetModelRequest) -> JSONResponse:
        if not registry.has(req.name):
            raise ModelLoadFailure(
                f"unknown model: {req.name}", code=ErrorCode.MODEL_UNKNOWN
            )
        worker.set_model(req.name)
        LOGGER.info("Model switch to %s requested over HTTP", req.name)
        return JSONResponse({"status": "switching", "model": req.name}, status_code=202)

    return app


def start_http_server(
    worker: WorkerControl,
    board: CaptionBoard,
    metrics: Metrics,
    registry: ModelRegistry,
    host: str,
    port: int,
) -> HttpServerHandle:
    """Start the FastAPI app in a background thread."""
    app = build_http_app(worker, board, metrics, registry)
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="info",
        log_config=_build_uvicorn_log_config(),
    )
    server = uvicorn.Server(config)

    thread = threading.Thread(target=server.run, name="caption-http", daemon=True)
    thread.start()
    LOGGER.info("HTTP control surface listening on http://%s:%d", host, port)
    return HttpServerHandle(server=server, thread=thread)


__all__ = [
    "HttpServerHandle",
    "SetModelRequest",
    "build_http_app",
    "prometheus_text",
    "start_http_server",
]
