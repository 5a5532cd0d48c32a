#!/usr/bin/env python3
"""Run the CampusFix API server.

Usage:
    python run.py [--host HOST] [--port PORT] [--reload] [--workers N]
"""

import argparse
import sys


def main():
    parser = argparse.ArgumentParser(
        description="Run the CampusFix issue workflow API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py                      Run with defaults (localhost:8000)
  python run.py --host 0.0.0.0       Listen on all interfaces
  python run.py --reload             Enable auto-reload (development)
        """,
    )

    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload on code changes (development mode)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        default="info",
        help="Logging level (default: info)",
    )

    args = parser.parse_args()

    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is not installed.")
        print("Install it with: pip install uvicorn[standard]")
        sys.exit(1)

    print(f"CampusFix listening on http://{args.host}:{args.port} (docs at /docs)")

    uvicorn.run(
        "campusfix.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers if not args.reload else 1,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
