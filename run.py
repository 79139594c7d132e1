#!/usr/bin/env python3
"""Run the Salesboard live leaderboard server.

Usage:
    python run.py [--host HOST] [--port PORT] [--reload] [--memory]

Examples:
    python run.py                      # Run with defaults (localhost:8000)
    python run.py --port 8080          # Run on port 8080
    python run.py --reload             # Run with auto-reload for development
    python run.py --memory             # In-process storage, no PostgreSQL needed
"""

import argparse
import os

import uvicorn


def main():
    parser = argparse.ArgumentParser(
        description="Run the Salesboard live leaderboard server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py                      Run with defaults (localhost:8000)
  python run.py --host 0.0.0.0       Listen on all interfaces
  python run.py --reload             Enable auto-reload (development)
  python run.py --memory             Keep all state in process memory
        """,
    )

    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload on code changes (development mode)",
    )
    parser.add_argument(
        "--memory",
        action="store_true",
        help="Use the in-process store instead of PostgreSQL",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        default="info",
        help="Logging level (default: info)",
    )

    args = parser.parse_args()

    # The hub, the notification timer and the in-memory store live in one
    # process, so a single worker is the only supported topology.
    if args.memory:
        os.environ["STORAGE_BACKEND"] = "memory"
    os.environ.setdefault("LOG_LEVEL", args.log_level.upper())

    print(f"Salesboard listening on http://{args.host}:{args.port}  (dashboard socket: /ws)")

    uvicorn.run(
        "salesboard.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
