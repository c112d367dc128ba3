#!/usr/bin/env python3
"""
tfserving-client command line

Sends a single request to a TensorFlow Serving instance and prints the result
as JSON. Connection settings default to the TFSERVING_* environment variables.

    python -m tfserving_client --host localhost --port 8500 predict cat.jpg --model resnet
    python -m tfserving_client status --model resnet
"""

import argparse
import dataclasses
import json
import logging
import os
import sys
from typing import List, Optional

from .client import ServingClientBuilder
from .exceptions import ServingClientError
from .model import ModelDescription

logger = logging.getLogger("tfserving-client")


def _configure_logging() -> None:
    log_level = os.environ.get("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tfserving-client",
        description="Send a request to a TensorFlow Serving model server.",
    )
    parser.add_argument("--host", help="Server hostname (default: $TFSERVING_HOST)")
    parser.add_argument("--port", type=int, help="gRPC port (default: $TFSERVING_PORT)")
    parser.add_argument("--signature", help="Signature name (default: serving_default)")
    parser.add_argument("--timeout", type=float, help="Per request deadline in seconds")

    sub = parser.add_subparsers(dest="command", required=True)

    predict = sub.add_parser("predict", help="Classify an image file")
    predict.add_argument("image", help="Path to the image")
    predict.add_argument("--model", required=True, help="Model name")
    predict.add_argument("--version", type=int, help="Model version")
    predict.add_argument(
        "--scale",
        type=float,
        default=1.0,
        help="Multiply every pixel value by this factor (default: %(default)s)",
    )

    for name, help_text in (("status", "Show model version states"),
                            ("metadata", "Show model signatures")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--model", required=True, help="Model name")
        cmd.add_argument("--version", type=int, help="Model version")

    return parser


def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    builder = ServingClientBuilder.from_env()
    if args.host:
        builder.hostname(args.host)
    if args.port is not None:
        builder.port(args.port)
    if args.signature:
        builder.signature_name(args.signature)
    if args.timeout is not None:
        builder.timeout(args.timeout)

    model = ModelDescription(args.model, version=args.version)

    try:
        with builder.build() as client:
            if args.command == "predict":
                scale = args.scale
                result = client.predict_with_preprocessing(args.image, model, lambda p: p * scale)
                output = dataclasses.asdict(result)
            elif args.command == "status":
                output = [dataclasses.asdict(s) for s in client.get_model_status(model)]
            else:
                output = dataclasses.asdict(client.get_model_metadata(model))
    except ServingClientError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    print(json.dumps(output, indent=2))
    return 0


def main() -> None:
    """Main entry point."""
    _configure_logging()
    sys.exit(run())


if __name__ == "__main__":
    main()
