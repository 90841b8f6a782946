"""Command line entry point of the language server."""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from types import FrameType

from .log import init_logging
from .server import Server, ServerError
from .transport import Transport, TransportMethod, TransportType


def main(argv: list[str] | None = None) -> int:
    """Serve over standard input and output; return the process exit status."""
    parser = argparse.ArgumentParser(prog="faust-lsp", description="Faust language server.")
    parser.add_argument("--log-file", default=None, help="where to write the log")
    args = parser.parse_args(argv)

    logger = init_logging(args.log_file)
    logger.info("Initialized")

    stop = threading.Event()
    server = Server(Transport(TransportType.SERVER, TransportMethod.STDIN))

    def on_signal(signum: int, frame: FrameType | None) -> None:
        stop.set()
        print("Got Interrupt", file=sys.stderr)
        logger.info("Got Interrupt")

    previous = {sig: signal.signal(sig, on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        server.run(stop)
        status = 0
    except ServerError:
        status = 1
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    logger.info("Ended")
    return status


if __name__ == "__main__":
    sys.exit(main())