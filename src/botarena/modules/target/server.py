"""Target service: a small product API guarded by the detector."""

import asyncio
import logging
import time
from pathlib import Path

from botarena.modules.detector import Detector, Policy, RequestLog, load_policy

from . import catalog
from .http_io import (
    HttpRequest,
    HttpResponse,
    parse_int_header,
    parse_mouse_movements,
    read_request,
    write_response,
)
from .store import DetectionStore, SessionLogStore

logger = logging.getLogger(__name__)

ASSET_EXTENSIONS: tuple[str, ...] = (
    ".css", ".js", ".png", ".jpg", ".jpeg", ".gif", ".svg", ".woff", ".woff2", ".ttf", ".ico",
)

DEFAULT_THROTTLE_DELAY = 2.0


def is_asset_request(path: str) -> bool:
    return path.startswith("/assets/") or path.endswith(ASSET_EXTENSIONS)


def _page_param(request: HttpRequest, name: str, default: int) -> int:
    try:
        return int(request.query.get(name, "")) or default
    except ValueError:
        return default


class TargetApp:
    """Asyncio HTTP server that logs, scores and gates every request."""

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 3000,
        policy_path: Path | None = None,
        policy: Policy | None = None,
        throttle_delay: float = DEFAULT_THROTTLE_DELAY,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.policy_path = policy_path
        self.detector = Detector(policy if policy is not None else load_policy(policy_path))
        self.throttle_delay = throttle_delay
        self.timeout = timeout
        self.session_logs = SessionLogStore()
        self.detections = DetectionStore()
        self._server: asyncio.Server | None = None
        self.running = False

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    async def start(self) -> None:
        """Start listening; with port 0 the bound port is written back to ``self.port``."""
        self._server = await asyncio.start_server(self._handle_client, self.host, self.port)
        sockets = self._server.sockets or ()
        if sockets:
            self.port = sockets[0].getsockname()[1]
        self.running = True
        logger.info("Target service listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server."""
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        self.running = False
        logger.info("Target service stopped")

    async def __aenter__(self) -> "TargetApp":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def reset(self) -> None:
        self.session_logs.clear()
        self.detections.clear()

    def reload_policy(self) -> None:
        self.detector = Detector(load_policy(self.policy_path))

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        try:
            request = await read_request(reader, self.timeout)
            if request is None:
                return
            response = await self.handle(request)
            write_response(writer, response)
            await writer.drain()
        except (TimeoutError, ConnectionError, OSError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    async def handle(self, request: HttpRequest) -> HttpResponse:
        """Run the logging and detection stages, then route the request."""
        session_id = request.header("x-session-id") or "unknown"
        path = request.path

        if not (path.startswith("/admin") or path == "/health"):
            self._log_request(session_id, request)

        if path.startswith("/admin") or path.startswith("/assets") or path == "/health":
            return self._route(request)

        result = self.detector.evaluate(session_id, self.session_logs.read_all(session_id))
        self.detections.append(session_id, result)

        if result.action == "block":
            return HttpResponse(403, {"error": "Access denied", "reason": "bot_detected"})

        if result.action == "throttle":
            await asyncio.sleep(self.throttle_delay)
            response = self._route(request)
            if response.status == 200:
                response.status = 429
            return response

        response = self._route(request)
        if result.action == "challenge":
            response.headers["X-Challenge-Required"] = "true"
        return response

    def _log_request(self, session_id: str, request: HttpRequest) -> None:
        self.session_logs.append(
            session_id,
            RequestLog(
                session_id=session_id,
                timestamp=time.time() * 1000,
                path=request.path,
                method=request.method,
                query=dict(request.query),
                user_agent=request.header("user-agent"),
                is_asset_request=is_asset_request(request.path),
                mouse_movements=parse_mouse_movements(request.header("x-mouse-movements")),
                dwell_time_ms=parse_int_header(request.header("x-dwell-time")),
                content_length=parse_int_header(request.header("x-prev-content-length")),
            ),
        )

    def _route(self, request: HttpRequest) -> HttpResponse:
        path = request.path.rstrip("/") or "/"
        method = request.method

        if path == "/health":
            return HttpResponse(200, {"status": "ok"})
        if path.startswith("/assets/"):
            suffix = path.rsplit(".", 1)[-1] if "." in path else "plain"
            return HttpResponse(200, "/* asset content */", content_type=f"text/{suffix}")

        if path == "/admin/logs" and method == "GET":
            return HttpResponse(200, self.session_logs.export())
        if path == "/admin/detections" and method == "GET":
            session_filter = request.query.get("sessionId")
            if session_filter:
                return HttpResponse(
                    200, [r.to_dict() for r in self.detections.read_all(session_filter)]
                )
            return HttpResponse(200, self.detections.export())
        if path == "/admin/reset" and method == "POST":
            self.reset()
            return HttpResponse(200, {"status": "reset"})
        if path == "/admin/reload-policy" and method == "POST":
            self.reload_policy()
            return HttpResponse(200, {"status": "reloaded"})

        if method != "GET":
            return HttpResponse(405, {"error": "Method not allowed"})
        if path == "/api/products":
            return HttpResponse(
                200,
                catalog.list_products(
                    page=_page_param(request, "page", 1),
                    page_size=_page_param(request, "pageSize", catalog.DEFAULT_PAGE_SIZE),
                    category=request.query.get("category") or None,
                ),
            )
        if path == "/api/products/search":
            query = request.query.get("q", "")
            if not query:
                return HttpResponse(400, {"error": "Search query required"})
            return HttpResponse(
                200,
                catalog.search_products(
                    query,
                    page=_page_param(request, "page", 1),
                    page_size=_page_param(request, "pageSize", catalog.DEFAULT_PAGE_SIZE),
                ),
            )
        if path == "/api/products/meta/categories":
            return HttpResponse(200, {"categories": catalog.categories()})
        if path.startswith("/api/products/"):
            product = catalog.get_product(path.removeprefix("/api/products/"))
            if product is None:
                return HttpResponse(404, {"error": "Product not found"})
            return HttpResponse(200, product.to_dict())

        return HttpResponse(404, {"error": "Not found"})
