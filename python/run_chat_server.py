#!/usr/bin/env python3
"""
Launch the local chat engine service for a product spec.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path

import uvicorn


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the Matrixx chat engine service for a specific product spec.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind host.")
    parser.add_argument("--port", type=int, default=8787, help="Bind port.")
    parser.add_argument(
        "--product-spec",
        default=None,
        help="Path to product spec JSON. Default: bundled matrixx_platform/specs/matrixx.json.",
    )
    parser.add_argument("--log-level", default="info", help="Log level.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    os.environ["CHAT_HOST"] = args.host
    os.environ["CHAT_PORT"] = str(args.port)
    os.environ["LOG_LEVEL"] = args.log_level.upper()
    if args.product_spec:
        os.environ["PRODUCT_SPEC_PATH"] = str(Path(args.product_spec).expanduser())

    from chat_server import PRODUCT_SPEC, PRODUCT_SPEC_PATH, app  # Import after env config

    print(
        f"Starting Matrixx chat service product={PRODUCT_SPEC.product_id} "
        f"bind=http://{args.host}:{args.port} product_spec={PRODUCT_SPEC_PATH}"
    )
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
