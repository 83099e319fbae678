"""Transport layer: HTTP control surface."""

from .http_server import HttpServerHandle, build_http_app, start_http_server

__all__ = ["HttpServerHandle", "build_http_app", "start_http_server"]
