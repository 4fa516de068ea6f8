"""The ``sdb`` command: load the configuration, open the store and serve until signalled."""

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

import yaml

from .api import SDB
from .config import load_config
from .errors import SdbError
from .httpserver import HttpServer
from .store import open_store

__all__ = ["main"]

_logger = logging.getLogger("sdb")

_STOP_SIGNALS = ("SIGHUP", "SIGINT", "SIGTERM", "SIGQUIT")


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sdb", description="Run the sdb database server.")
    parser.add_argument(
        "--config", default="configs/config.yml", help="path of the YAML configuration file"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Serve until a stop signal arrives; return the process exit status."""
    args = _parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO, format="%(name)s:  %(asctime)s %(levelname)s %(message)s"
    )
    _logger.info("use config file: %s", args.config)

    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError, SdbError) as exc:
        print(f"sdb: cannot read config {args.config}: {exc}", file=sys.stderr)
        return 1
    _logger.info("conf: %s", config)

    try:
        store = open_store(config)
    except (OSError, ValueError, SdbError) as exc:
        print(f"sdb: cannot open store: {exc}", file=sys.stderr)
        return 1

    sdb = SDB(store, node_id=config.cluster.node_id, address=config.cluster.address)
    rate = config.server.rate
    server = HttpServer(
        sdb, port=config.server.http_port, rate=rate if rate and rate > 0 else None
    )
    try:
        server.start()
    except OSError as exc:
        sdb.close()
        print(f"sdb: cannot listen on port {config.server.http_port}: {exc}", file=sys.stderr)
        return 1

    stop = threading.Event()
    received: List[int] = []

    def on_signal(signum: int, _frame: object) -> None:
        received.append(signum)
        stop.set()

    for name in _STOP_SIGNALS:
        sig = getattr(signal, name, None)
        if sig is not None:
            signal.signal(sig, on_signal)

    while not stop.wait(0.5):
        pass
    _logger.info("receive os signal: %s", signal.Signals(received[0]).name)

    server.stop()
    sdb.close()
    _logger.info("stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())