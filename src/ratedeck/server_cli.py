"""CLI entry point for the RateDeck API server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="ratedeck-server",
        description="RateDeck API server: job queue and A-Z destination import",
    )
    parser.add_argument("--host", default=None, help="Bind host (default: RATEDECK_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: RATEDECK_PORT or 8080)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database, tables created on startup",
    )
    parser.add_argument(
        "--no-worker",
        action="store_true",
        help="Do not start the job worker at boot (it can be started via the API)",
    )
    args = parser.parse_args(argv)

    # Settings are read at import time, so the environment must be set first
    if args.local:
        os.environ["RATEDECK_LOCAL_MODE"] = "1"
    if args.no_worker:
        os.environ["RATEDECK_WORKER_AUTOSTART"] = "0"

    import uvicorn

    from ratedeck.config import settings

    uvicorn.run(
        "ratedeck.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
    )


if __name__ == "__main__":
    main()
