#!/usr/bin/env python3
"""
Expense API -- personal expense tracking with per-account isolation.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --reload

Environment variables (or .env):
  SECRET_KEY     Required. JWT signing secret, at least 32 characters.
  PORT           Listening port when --port is not given (default 5000).
  DATABASE_URL   SQLAlchemy URL (default: sqlite file next to the code).
  BCRYPT_ROUNDS  Password hashing work factor (default 12).
"""

import argparse
import sys

import uvicorn
from pydantic import ValidationError

from core.config import get_settings


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run the Expense API server.")
    parser.add_argument("--host", help="Interface to bind (default: HOST setting)")
    parser.add_argument("--port", type=int, help="Port to listen on (default: PORT setting)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"  [!] Invalid configuration: {e}", file=sys.stderr)
        return 1

    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
