"""
Command line entry point.

Usage:
    gpu-worker serve [--host HOST] [--port PORT] [--workers N]
    gpu-worker mirror INPUT OUTPUT
    gpu-worker blur INPUT OUTPUT [--radius R]

GIF inputs are processed frame by frame; other image formats are treated
as a single still image.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import ServiceConfig
from .errors import GpuWorkerError
from .gpu.context import GpuContext
from .orchestrator import TransformOrchestrator, transform_image
from .transforms import create_transform

logger = logging.getLogger("gpu_worker.cli")

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "info") -> None:
    """Set up root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


async def run_file(
    name: str,
    input_path: Path,
    output_path: Path,
    power_preference: str,
    **options
) -> None:
    """Apply the named transform to one file."""
    data = input_path.read_bytes()
    context = await GpuContext.create(power_preference=power_preference)
    try:
        transform = create_transform(name, context)
        if input_path.suffix.lower() == ".gif":
            result = await TransformOrchestrator().run(data, transform, **options)
        else:
            out_format = output_path.suffix.lstrip(".").upper() or None
            if out_format == "JPG":
                out_format = "JPEG"
            result = await transform_image(data, transform, format=out_format, **options)
    finally:
        context.close()

    output_path.write_bytes(result)
    logger.info("Wrote %s (%d bytes)", output_path, len(result))


def serve(config: ServiceConfig) -> None:
    """
    Run the HTTP service under uvicorn.

    The app is built by each worker process from the environment, so
    only host, port, worker count and log level come from ``config``.
    """
    import uvicorn

    uvicorn.run(
        "gpu_worker.service:create_app",
        factory=True,
        workers=config.workers,
        host=config.host,
        port=config.port,
        log_level=config.log_level,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gpu-worker", description="GPU-accelerated GIF transforms")
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL or info)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: HOST)")
    serve_parser.add_argument("--port", type=int, default=None, help="Listen port (default: PORT)")
    serve_parser.add_argument("--workers", type=int, default=None, help="Worker processes (default: WORKERS)")

    mirror_parser = subparsers.add_parser("mirror", help="Flip every frame upside down")
    mirror_parser.add_argument("input", type=Path)
    mirror_parser.add_argument("output", type=Path)

    blur_parser = subparsers.add_parser("blur", help="Gaussian blur every frame")
    blur_parser.add_argument("input", type=Path)
    blur_parser.add_argument("output", type=Path)
    blur_parser.add_argument("--radius", type=float, default=None, help="Blur radius in pixels")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = ServiceConfig.from_env()
    except GpuWorkerError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    configure_logging(args.log_level or config.log_level)

    if args.command == "serve":
        given = (("host", args.host), ("port", args.port), ("workers", args.workers))
        overrides = {k: v for k, v in given if v is not None}
        serve(config.model_copy(update=overrides))
        return 0

    options = {}
    if args.command == "blur":
        options['radius'] = config.blur_radius if args.radius is None else args.radius

    try:
        asyncio.run(run_file(
            args.command, args.input, args.output, config.power_preference, **options
        ))
    except (GpuWorkerError, ValueError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
