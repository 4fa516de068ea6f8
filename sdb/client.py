"""A client for the HTTP front end and a load generator built on it."""

import http.client
import json
import logging
import random
import string
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterator, Mapping, Optional, Set

from .api import UnknownMethodError
from .errors import AlreadyExistsError, InvalidArgumentError, NotFoundError, SdbError
from .httpserver import _TEXT_FIELDS, _from_wire, _to_wire

__all__ = ["Client", "run_benchmark"]

_logger = logging.getLogger("sdb.client")

_ERRORS = {
    "invalid_argument": InvalidArgumentError,
    "not_found": NotFoundError,
    "already_exists": AlreadyExistsError,
    "unknown_method": UnknownMethodError,
}

_LETTERS = string.ascii_uppercase + string.ascii_lowercase


def _prepare(value: Any, field: Optional[str] = None) -> Any:
    if isinstance(value, str):
        return value if field in _TEXT_FIELDS else value.encode("utf-8")
    if isinstance(value, Mapping):
        return {k: _prepare(v, k) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_prepare(v, field) for v in value]
    return value


def _error_from(body: bytes, status: int) -> SdbError:
    try:
        document = json.loads(body) if body else {}
    except ValueError:
        document = {}
    if not isinstance(document, dict):
        document = {}
    cls = _ERRORS.get(document.get("code"), SdbError)
    return cls(document.get("error") or f"request failed with status {status}")


class Client:
    """Calls database methods by name over HTTP."""

    def __init__(self, host: str = "127.0.0.1", port: int = 10000, timeout: float = 10.0) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self._closed = False
        self._lock = threading.Lock()
        self._streams: Set[http.client.HTTPConnection] = set()

    def call(self, method: str, **kwargs: Any) -> Any:
        """Call ``method`` with ``kwargs`` as request fields and return the response fields.

        Byte fields come back as bytes.  For ``Subscribe`` the result is an
        iterator over the messages received on the topic.
        """
        if self._closed:
            raise SdbError("client is closed")
        body = json.dumps(_to_wire(_prepare(kwargs))).encode()
        conn = http.client.HTTPConnection(self.host, self.port, timeout=self.timeout)
        try:
            conn.request(
                "POST", "/v1/" + method, body=body, headers={"Content-Type": "application/json"}
            )
            response = conn.getresponse()
            if method == "Subscribe" and response.status == 200:
                return self._stream(conn, response)
            data = response.read()
        except BaseException:
            conn.close()
            raise
        conn.close()
        if response.status != 200:
            raise _error_from(data, response.status)
        return _from_wire(json.loads(data)) if data else {}

    def _stream(
        self, conn: http.client.HTTPConnection, response: http.client.HTTPResponse
    ) -> Iterator[Dict[str, Any]]:
        if conn.sock is not None:
            conn.sock.settimeout(None)
        with self._lock:
            self._streams.add(conn)
        try:
            while True:
                line = response.readline()
                if not line:
                    return
                line = line.strip()
                if line:
                    yield _from_wire(json.loads(line))
        except (OSError, ValueError):
            return
        finally:
            with self._lock:
                self._streams.discard(conn)
            conn.close()

    def close(self) -> None:
        """Refuse further calls and end open subscriptions."""
        self._closed = True
        with self._lock:
            streams = list(self._streams)
            self._streams.clear()
        for conn in streams:
            conn.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def _random_bytes() -> bytes:
    return "".join(random.choices(_LETTERS, k=16)).encode()


def run_benchmark(client: Client, rounds: int = 100000, concurrency: int = 200) -> Dict[str, Any]:
    """Send ``rounds`` pairs of Set and Get calls with random 16-letter keys.

    Returns the number of requests, how many failed and the elapsed seconds.
    """
    if rounds < 0:
        raise ValueError("rounds must not be negative")
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    def run(method: str, **kwargs: Any) -> bool:
        try:
            client.call(method, **kwargs)
            return True
        except (SdbError, OSError) as exc:
            _logger.warning("%s failed: %s, fields = %r", method, exc, kwargs)
            return False

    started = time.perf_counter()
    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        futures = []
        for _ in range(rounds):
            futures.append(pool.submit(run, "Set", key=_random_bytes(), value=_random_bytes()))
            futures.append(pool.submit(run, "Get", key=_random_bytes()))
        succeeded = sum(future.result() for future in futures)
    return {
        "requests": len(futures),
        "errors": len(futures) - succeeded,
        "seconds": time.perf_counter() - started,
    }