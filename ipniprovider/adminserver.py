"""HTTP server for administrative operations on CAR files."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from ipniprovider.metadata import Metadata
from ipniprovider.models import ImportCarReq, ImportCarRes, ListCarRes, RemoveCarReq, RemoveCarRes
from ipniprovider.provider import AlreadyAdvertisedError
from ipniprovider.supplier import CarNotFoundError, CarSupplier

_log = logging.getLogger("adminserver")


@dataclass
class AdminOptions:
    """Settings of the admin HTTP server; timeouts are in seconds."""

    listen_addr: str = "0.0.0.0:3102"
    read_timeout: float = 30.0
    write_timeout: float = 30.0


@dataclass
class Request:
    """An HTTP request as seen by the handlers."""

    method: str
    path: str
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str:
        """Return the value of header ``name`` (case-insensitive), or ''."""
        lowered = name.lower()
        return next((v for k, v in self.headers.items() if k.lower() == lowered), "")


@dataclass
class Response:
    """An HTTP response produced by the handlers."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)


def _error(status: int, message: str) -> Response:
    return Response(
        status,
        (message + "\n").encode("utf-8"),
        {"Content-Type": "text/plain; charset=utf-8", "X-Content-Type-Options": "nosniff"},
    )


def _respond(status: int, body: bytes) -> Response:
    return Response(status, body, {"Content-Type": "application/json"})


def _check_method(request: Request, method: str) -> Response | None:
    if request.method != method:
        response = _error(405, "")
        response.headers["Allow"] = method
        return response
    return None


def _check_json(request: Request) -> Response | None:
    # A request without a content type is assumed to be JSON.
    content_type = request.header("Content-Type")
    if content_type:
        media_type = content_type.split(";", 1)[0].strip().lower()
        if media_type != "application/json":
            return _error(415, "")
    return None


class CarHandler:
    """Handles importing, removing and listing CAR files."""

    def __init__(self, car_supplier: CarSupplier) -> None:
        self._cs = car_supplier

    def handle_import(self, request: Request) -> Response:
        """Import a CAR file and advertise it."""
        rejected = _check_method(request, "POST") or _check_json(request)
        if rejected:
            return rejected
        _log.info("received import CAR request")
        try:
            req = ImportCarReq.from_json(request.body)
        except ValueError as err:
            msg = f"failed to unmarshal request: {err}"
            _log.error(msg)
            return _error(400, msg)
        try:
            md = Metadata.from_bytes(req.metadata)
        except ValueError as err:
            msg = f"failed to unmarshal metadata: {err}"
            _log.error(msg)
            return _error(400, msg)

        _log.info("importing CAR")
        try:
            adv_id = self._cs.put(req.key, req.path, md)
        except AlreadyAdvertisedError:
            msg = "CAR already advertised"
            _log.info("%s: path=%s", msg, req.path)
            return _error(409, msg)
        except Exception as err:
            msg = f"failed to import CAR: {err}"
            _log.error("%s: path=%s", msg, req.path)
            return _error(500, msg)

        _log.info("imported CAR successfully: path=%s", req.path)
        return _respond(200, ImportCarRes(req.key, adv_id).to_json())

    def handle_remove(self, request: Request) -> Response:
        """Remove a CAR file and advertise the removal."""
        rejected = _check_method(request, "POST") or _check_json(request)
        if rejected:
            return rejected
        _log.info("Received remove CAR request")
        try:
            req = RemoveCarReq.from_json(request.body)
        except ValueError as err:
            msg = f"failed to unmarshal request. {err}"
            _log.error(msg)
            return _error(400, msg)
        if not req.key:
            return _error(400, "key must be specified")

        b64_key = base64.b64encode(req.key).decode("ascii")
        _log.info("Removing CAR by key: %s", b64_key)
        try:
            adv_id = self._cs.remove(req.key)
        except CarNotFoundError:
            msg = f"provider has no car file for key {b64_key}"
            _log.error(msg)
            return _error(404, msg)
        except Exception as err:
            _log.error("Failed to remove CAR: key=%s err=%s", b64_key, err)
            return _error(500, f"error removing car: {err}")

        _log.info("Removed CAR successfully: contextID=%s", b64_key)
        return _respond(200, RemoveCarRes(adv_id=adv_id).to_json())

    def handle_list(self, request: Request) -> Response:
        """List the paths of the imported CAR files."""
        rejected = _check_method(request, "GET")
        if rejected:
            return rejected
        try:
            paths = self._cs.list()
        except Exception as err:
            msg = f"failed to list CARs {err}"
            _log.error(msg)
            return _error(500, msg)
        return _respond(200, ListCarRes(paths=paths).to_json())


def _split_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr!r}")
    try:
        return host.strip("[]"), int(port)
    except ValueError:
        raise ValueError(f"invalid port in address {addr!r}") from None


class AdminServer:
    """Admin HTTP server; it binds its listening socket on construction."""

    def __init__(self, car_supplier: CarSupplier, options: AdminOptions | None = None) -> None:
        self.options = options or AdminOptions()
        cars = CarHandler(car_supplier)
        self._routes = {
            "/admin/import/car": cars.handle_import,
            "/admin/remove/car": cars.handle_remove,
            "/admin/list/car": cars.handle_list,
        }
        self._httpd = ThreadingHTTPServer(
            _split_addr(self.options.listen_addr), self._handler_class()
        )
        self._httpd.daemon_threads = True
        self._started = False

    @property
    def address(self) -> tuple[str, int]:
        """The host and port the server listens on."""
        host, port = self._httpd.server_address[:2]
        return str(host), int(port)

    def handle(self, request: Request) -> Response:
        """Route ``request`` to its handler."""
        route = self._routes.get(request.path)
        if route is None:
            return _error(404, "404 page not found")
        return route(request)

    def start(self) -> None:
        """Serve requests; blocks until the server is shut down."""
        _log.info("admin http server listening: addr=%s:%d", *self.address)
        self._started = True
        self._httpd.serve_forever()

    def shutdown(self) -> None:
        """Stop serving and close the listening socket."""
        _log.info("admin http server shutdown")
        if self._started:
            self._httpd.shutdown()
        self._httpd.server_close()

    def _handler_class(self) -> type[BaseHTTPRequestHandler]:
        server = self

        class _Handler(BaseHTTPRequestHandler):
            timeout = server.options.read_timeout

            def _dispatch(self) -> None:
                try:
                    length = int(self.headers.get("Content-Length") or 0)
                except ValueError:
                    length = 0
                body = self.rfile.read(length) if length > 0 else b""
                request = Request(
                    self.command, urlsplit(self.path).path, body, dict(self.headers.items())
                )
                response = server.handle(request)
                self.connection.settimeout(server.options.write_timeout)
                self.send_response(response.status)
                for name, value in response.headers.items():
                    self.send_header(name, value)
                self.send_header("Content-Length", str(len(response.body)))
                self.end_headers()
                if self.command != "HEAD":
                    self.wfile.write(response.body)

            do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = do_HEAD = _dispatch

            def log_message(self, format: str, *args: object) -> None:
                _log.debug(format, *args)

        return _Handler