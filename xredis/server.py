"""TCP server front end and command-line entry point."""

from __future__ import annotations

import argparse
import logging
import socketserver
from pathlib import Path
from typing import Optional, Sequence, Union

from xredis.commands import DUMP_FILE, handle_request
from xredis.store import StoreError, XRedis

DEFAULT_PORT = 6379
READ_SIZE = 1024

BANNER = r"""
                 _ _    
 __ ___ _ ___ __| (_)___
 \ \ / '_/ -_) _| | (_-<
 /_\_\_| \___\__,_|_/__/

"""

log = logging.getLogger(__name__)


def load_stored_state(store: XRedis, path: Union[str, Path] = DUMP_FILE) -> bool:
    """Load a dump file into ``store``.

    Returns False when there is no readable file; raises StoreError when the
    file exists but cannot be decoded.
    """
    log.info("Loading dump file")
    try:
        data = Path(path).read_bytes()
    except FileNotFoundError:
        log.info("No dump file to load")
        return False
    except OSError:
        log.warning("Failed opening dump file")
        return False
    store.load(data)
    log.info("Dump file loaded successfully")
    return True


class _ConnectionHandler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        store = self.server.store  # type: ignore[attr-defined]
        while True:
            try:
                data = self.request.recv(READ_SIZE)
            except OSError:
                log.warning("An error occurred reading from connection: %s", self.client_address)
                return
            if not data:
                return
            self.request.sendall(handle_request(store, data))


class _XRedisServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, address, store: XRedis) -> None:
        self.store = store
        super().__init__(address, _ConnectionHandler)


def serve(store: XRedis, host: str, port: int) -> socketserver.ThreadingTCPServer:
    """Bind a server answering requests against ``store``; run it with ``serve_forever``."""
    return _XRedisServer((host, port), store)


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="xredis", description="In-memory key/value server.")
    parser.add_argument("--host", default="", help="address to listen on (default: all)")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="TCP port to listen on")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    print(BANNER, end="")
    log.info("Starting xRedis on port %d", args.port)

    store = XRedis()
    try:
        load_stored_state(store, DUMP_FILE)
    except StoreError as exc:
        log.error("failed to deserialize DB dump file: %s", exc)
        return 1

    try:
        server = serve(store, args.host, args.port)
    except OSError as exc:
        log.error("Could not start xredis on port %d: %s", args.port, exc)
        return 1

    with server:
        log.info("Ready to receive connections")
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            log.info("Shutting down")
    return 0