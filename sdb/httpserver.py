"""HTTP front end for the database.

``POST /v1/<Method>`` takes a JSON object of request fields and answers with
the response fields as JSON.  Byte fields travel as strings whose code points
are the byte values (latin-1).  A request string that holds characters above
U+00FF is taken as UTF-8 text instead.  ``/v1/Subscribe`` streams one JSON
message per line until either side closes.  ``/metrics`` reports request
counters.  ``/join`` and ``/delete`` handle cluster membership requests.
"""

import dataclasses
import json
import logging
import threading
from collections import Counter
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional, Set, Tuple
from urllib.parse import parse_qs, urlsplit

from .api import UnknownMethodError
from .errors import AlreadyExistsError, InvalidArgumentError, NotFoundError, SdbError
from .pubsub import Subscription
from .ratelimit import RateLimiter

__all__ = ["HttpServer"]

_logger = logging.getLogger("sdb.http")

_TEXT_FIELDS = frozenset({"data_type", "address", "error", "code"})
_API_PREFIX = "/v1"
_MAX_UINT64 = (1 << 64) - 1


def _to_wire(value: Any) -> Any:
    """Make ``value`` JSON-serialisable, turning bytes into latin-1 strings."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("latin-1")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _to_wire(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {str(k): _to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_wire(v) for v in value]
    return value


def _from_wire(value: Any, field: Optional[str] = None) -> Any:
    """Turn strings of a decoded JSON document back into bytes, except text fields."""
    if isinstance(value, str):
        if field in _TEXT_FIELDS:
            return value
        try:
            return value.encode("latin-1")
        except UnicodeEncodeError:
            return value.encode("utf-8")
    if isinstance(value, dict):
        return {k: _from_wire(v, k) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_wire(v, field) for v in value]
    return value


def _error_status(exc: BaseException) -> Tuple[int, str]:
    if isinstance(exc, UnknownMethodError):
        return 404, "unknown_method"
    if isinstance(exc, NotFoundError):
        return 404, "not_found"
    if isinstance(exc, AlreadyExistsError):
        return 409, "already_exists"
    if isinstance(exc, InvalidArgumentError):
        return 400, "invalid_argument"
    return 500, "internal"


def _parse_uint64(text: str) -> Optional[int]:
    if not text.isascii() or not text.isdigit():
        return None
    number = int(text)
    return number if number <= _MAX_UINT64 else None


class _Handler(BaseHTTPRequestHandler):
    server_version = "sdb"

    @property
    def owner(self) -> "HttpServer":
        return self.server.owner  # type: ignore[attr-defined]

    def log_message(self, format: str, *args: Any) -> None:
        _logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        self._route()

    def do_POST(self) -> None:
        self._route()

    def _send(self, status: int, body: bytes, content_type: str = "text/plain") -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_json(self, status: int, document: Any) -> None:
        self._send(status, json.dumps(_to_wire(document)).encode(), "application/json")

    def _send_error(self, exc: BaseException) -> None:
        status, code = _error_status(exc)
        self._send_json(status, {"error": str(exc), "code": code})

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length") or 0)
        return self.rfile.read(length) if length > 0 else b""

    def _route(self) -> None:
        path = self.path
        if path == "/metrics":
            self._send(200, self.owner._metrics_text().encode())
        elif path.startswith("/join"):
            self._membership(join=True)
        elif path.startswith("/delete"):
            self._membership(join=False)
        elif path.startswith(_API_PREFIX):
            self._api()
        else:
            self._send(502, b"")

    def _membership(self, join: bool) -> None:
        query = parse_qs(urlsplit(self.path).query)
        node_id = _parse_uint64((query.get("nodeId") or [""])[0])
        address = (query.get("address") or [""])[0]
        if node_id is None or (join and not address):
            self._send(401, b"failed")
            return
        action = "join" if join else "delete"
        _logger.warning(
            "%s request for node %d refused: this server runs a single node", action, node_id
        )
        self._send(500, b"failed")

    def _api(self) -> None:
        owner = self.owner
        method = urlsplit(self.path).path[len(_API_PREFIX):].strip("/")
        owner._count(method)
        try:
            body = self._read_body()
            try:
                payload = json.loads(body) if body.strip() else {}
            except ValueError as exc:
                raise InvalidArgumentError(f"request body is not JSON: {exc}") from exc
            if not isinstance(payload, dict):
                raise InvalidArgumentError("request body must be a JSON object")
            if method != "Subscribe" and owner._limited():
                owner._count(method, failed=True)
                self._send_json(429, {"error": "rate limit exceeded", "code": "rate_limited"})
                return
            result = owner._sdb.handle(method, _from_wire(payload))
        except SdbError as exc:
            owner._count(method, failed=True)
            _logger.info("handle %s failed: %s", method, exc)
            self._send_error(exc)
            return
        except Exception as exc:  # a failing handler must not take the server down
            owner._count(method, failed=True)
            _logger.exception("handle %s crashed", method)
            self._send_json(500, {"error": str(exc), "code": "internal"})
            return
        subscription = result.get("subscription") if isinstance(result, dict) else None
        if isinstance(subscription, Subscription):
            self._stream(subscription)
        else:
            self._send_json(200, result)

    def _stream(self, subscription: Subscription) -> None:
        owner = self.owner
        self.close_connection = True
        self.send_response(200)
        self.send_header("Content-Type", "application/x-ndjson")
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.flush()
        owner._track(subscription)
        try:
            while not owner._stopping.is_set():
                message = subscription.get(timeout=0.5)
                if message is None:
                    if subscription.closed:
                        break
                    continue
                self.wfile.write(json.dumps(_to_wire(message)).encode() + b"\n")
                self.wfile.flush()
        except OSError as exc:
            _logger.info("send to subscriber failed, so stop: %s", exc)
        finally:
            subscription.close()
            owner._untrack(subscription)


class HttpServer:
    """Serves a request dispatcher (anything with ``handle(method, payload)``) over HTTP."""

    def __init__(
        self, sdb: Any, host: str = "", port: int = 0, rate: Optional[int] = None
    ) -> None:
        self._sdb = sdb
        self.host = host
        self.port = port
        self._limiter = RateLimiter(rate) if rate is not None else None
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._stopping = threading.Event()
        self._lock = threading.Lock()
        self._subscriptions: Set[Subscription] = set()
        self._requests: Dict[str, int] = Counter()
        self._errors: Dict[str, int] = Counter()

    @property
    def address(self) -> Tuple[str, int]:
        """The bound host and port; the configured ones before ``start``."""
        if self._server is None:
            return self.host, self.port
        host, port = self._server.server_address[:2]
        return str(host), int(port)

    def start(self) -> None:
        """Bind the port and serve requests on a background thread."""
        if self._server is not None:
            raise RuntimeError("server already started")
        self._stopping.clear()
        server = ThreadingHTTPServer((self.host, self.port), _Handler)
        server.owner = self  # type: ignore[attr-defined]
        self._server = server
        self._thread = threading.Thread(
            target=server.serve_forever, kwargs={"poll_interval": 0.2}, daemon=True
        )
        self._thread.start()
        _logger.info("serve http: %s:%d", *self.address)

    def stop(self) -> None:
        """Close open subscriptions and stop serving."""
        server, thread = self._server, self._thread
        if server is None:
            return
        self._stopping.set()
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.close()
        server.shutdown()
        server.server_close()
        if thread is not None:
            thread.join()
        self._server = None
        self._thread = None
        _logger.info("stop http server finished")

    def __enter__(self) -> "HttpServer":
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()

    def _limited(self) -> bool:
        return self._limiter is not None and self._limiter.limit()

    def _count(self, method: str, failed: bool = False) -> None:
        with self._lock:
            if failed:
                self._errors[method] += 1
            else:
                self._requests[method] += 1

    def _track(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions.add(subscription)

    def _untrack(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions.discard(subscription)

    def _metrics_text(self) -> str:
        with self._lock:
            requests = sorted(self._requests.items())
            errors = sorted(self._errors.items())
            streams = len(self._subscriptions)
        lines = ["# TYPE sdb_requests_total counter"]
        lines += [f'sdb_requests_total{{method="{m}"}} {n}' for m, n in requests]
        lines.append("# TYPE sdb_request_errors_total counter")
        lines += [f'sdb_request_errors_total{{method="{m}"}} {n}' for m, n in errors]
        lines.append("# TYPE sdb_subscriptions gauge")
        lines.append(f"sdb_subscriptions {streams}")
        return "\n".join(lines) + "\n"