#!/usr/bin/env python3
"""
Run the Fabric Pay API with uvicorn.

    python scripts/run_api.py --port 8000 --reload
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

load_dotenv()

import uvicorn


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the Fabric Pay merchant API")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "3000")))
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    parser.add_argument("--mock", action="store_true", help="Use the in-memory gateway (INTEGRATIONS_MODE=mock)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(args.verbose)
    if args.mock:
        os.environ["INTEGRATIONS_MODE"] = "mock"

    uvicorn.run(
        "fabric_pay.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="debug" if args.verbose else "info",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
