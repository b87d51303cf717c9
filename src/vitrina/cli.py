"""Vitrina CLI — run the web server.

Usage:
    vitrina serve                      # one process on $VITRINA_PORT (8080)
    vitrina serve -p 3000              # override the port
    vitrina serve -m cluster           # one worker per CPU

In cluster mode every worker is an independent process with its own hub,
product list and (unless Redis is configured) its own sessions. uvicorn's
supervisor replaces a worker that dies.
"""

import logging
import os
from typing import Optional

import click
import uvicorn

from vitrina import __version__
from vitrina.config import settings

logger = logging.getLogger("vitrina.cli")


def worker_count(mode: str, workers: int) -> int:
    """Number of processes to run for a mode."""
    if mode != "cluster":
        return 1
    return workers or os.cpu_count() or 1


@click.group()
@click.version_option(version=__version__, prog_name="vitrina")
def main():
    """Vitrina — product showcase with live chat."""


@main.command()
@click.option("--port", "-p", type=int, default=None, help="Listening port (default: VITRINA_PORT or 8080)")
@click.option(
    "--mode", "-m",
    type=click.Choice(["fork", "cluster"], case_sensitive=False),
    default=None,
    help="fork = single process, cluster = one worker per CPU",
)
@click.option("--host", default=None, help="Bind address (default: VITRINA_HOST)")
@click.option("--workers", "-w", type=int, default=None, help="Worker count in cluster mode (default: CPU count)")
def serve(port: Optional[int], mode: Optional[str], host: Optional[str], workers: Optional[int]):
    """Start the HTTP + WebSocket server."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    mode = (mode or settings.mode).lower()
    port = port or settings.port
    host = host or settings.host
    n = worker_count(mode, settings.workers if workers is None else workers)

    if mode == "cluster":
        logger.info("CPUs: %s, starting %s workers (master pid %s)", os.cpu_count(), n, os.getpid())
    logger.info("Mode %s, listening on %s:%s", mode.upper(), host, port)

    uvicorn.run(
        "vitrina.main:app",
        host=host,
        port=port,
        workers=n if mode == "cluster" else None,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
