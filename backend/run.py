"""
Run the Jobflow API with uvicorn.

Defaults come from Settings (HOST, PORT, WORKERS, RELOAD, LOG_LEVEL in the
environment or .env); command line flags override them.

Usage:
    python run.py
    python run.py --reload
    python run.py --port 8080 --workers 4
"""
import argparse
from typing import List, Optional

import uvicorn

from jobflow.config.settings import Settings, settings

LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]


def build_parser(config: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the Jobflow API server")
    parser.add_argument("--host", default=config.host, help=f"Bind address (default: {config.host})")
    parser.add_argument("--port", type=int, default=config.port, help=f"Bind port (default: {config.port})")
    parser.add_argument(
        "--reload",
        action=argparse.BooleanOptionalAction,
        default=config.reload,
        help="Restart on code changes; forces a single worker"
    )
    parser.add_argument(
        "--log-level",
        default=config.log_level.lower(),
        choices=LOG_LEVELS,
        type=str.lower,
        help="Uvicorn log level (default: LOG_LEVEL)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=config.workers,
        help=f"Worker processes (default: {config.workers})"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser(settings).parse_args(argv)
    workers = 1 if args.reload else args.workers

    print(f"Starting Jobflow API on {args.host}:{args.port} ({settings.environment})")
    print(f"  reload={args.reload} workers={workers} log_level={args.log_level}")

    uvicorn.run(
        "jobflow.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
        workers=workers
    )


if __name__ == "__main__":
    main()
