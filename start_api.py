#!/usr/bin/env python3
"""
Startup script for the Echo Feeds API server.

Usage:
    python start_api.py              # Development mode
    python start_api.py --prod       # Production mode
    python start_api.py --port 8080  # Custom port
"""

import argparse
import os
import uvicorn


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Start the Echo Feeds API")
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8001")),
        help="Port to bind to (default: $PORT or 8001)"
    )
    parser.add_argument(
        "--prod",
        action="store_true",
        help="Run in production mode (no auto-reload, several workers)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)"
    )
    parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Disable auto-reload to reduce CPU usage"
    )
    return parser


def uvicorn_options(args: argparse.Namespace) -> dict:
    """Translate parsed arguments into ``uvicorn.run`` keyword arguments."""
    if args.prod:
        return {
            "app": "api.main:app",
            "host": args.host,
            "port": args.port,
            "workers": args.workers,
            "log_level": "info",
        }

    options = {
        "app": "api.main:app",
        "host": args.host,
        "port": args.port,
        "log_level": "debug",
    }
    if not args.no_reload:
        options.update({
            "reload": True,
            "reload_dirs": ["api", "feeds", "ingest"],
            "reload_delay": 1.0
        })
    return options


def main(argv=None):
    """Start the FastAPI server with configurable options."""
    args = build_parser().parse_args(argv)
    options = uvicorn_options(args)

    mode = "PRODUCTION" if args.prod else "DEVELOPMENT"
    print(f"Starting Echo Feeds API in {mode} mode")
    print(f"   http://{args.host}:{args.port}")
    if not args.prod:
        print(f"   API docs: http://{args.host}:{args.port}/docs")

    uvicorn.run(**options)


if __name__ == "__main__":
    main()
