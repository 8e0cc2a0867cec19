"""
bootstrap/entrypoints.py - Application entry points

Provides the ``primer`` command:
- run: controller plus health API against the cluster
- reconcile: a single pass for one export
- render: desired manifests for an export read from a file, no cluster access
"""

from __future__ import annotations
from typing import List, Optional
import argparse
import asyncio
import json
import logging
import sys

import yaml

from .config import PrimerConfig, load_config

logger = logging.getLogger("bootstrap.entrypoints")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


class JSONFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record):
        entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    json_format: bool = False,
    fmt: str = None,
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
        fmt: Format string for plain-text logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(fmt or "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="GitOps primer export operator",
        prog="primer",
    )

    parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Log level (overrides configuration)",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path",
        default=None,
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON",
    )
    parser.add_argument(
        "--kubeconfig",
        help="Kubeconfig path (default: in-cluster, then ~/.kube/config)",
        default=None,
    )

    commands = parser.add_subparsers(dest="command", required=True)

    run = commands.add_parser("run", help="Run the controller and health API")
    run.add_argument("-w", "--workers", type=int, default=None, help="Worker count")
    run.add_argument("-n", "--namespace", default=None, help="Only reconcile exports in this namespace")
    run.add_argument("-p", "--port", type=int, default=None, help="API port")
    run.add_argument("-H", "--host", default=None, help="API host")

    reconcile = commands.add_parser("reconcile", help="Run a single reconcile pass")
    reconcile.add_argument("key", metavar="NAMESPACE/NAME", help="Export to reconcile")

    render = commands.add_parser("render", help="Print desired manifests for an export")
    render.add_argument("-f", "--filename", required=True, help="Export object as YAML or JSON")
    render.add_argument("--kind", default=None, help="Only render this kind, e.g. Route")
    render.add_argument("-o", "--output", choices=["json", "yaml"], default="yaml", help="Output format")

    return parser


def _configure(parsed: argparse.Namespace) -> PrimerConfig:
    config = load_config(parsed.config)
    if parsed.log_level:
        config.logging.level = parsed.log_level
    if parsed.log_file:
        config.logging.log_file = parsed.log_file
    if parsed.json_logs:
        config.logging.json_logs = True
    if parsed.kubeconfig:
        config.controller.kubeconfig = parsed.kubeconfig

    setup_logging(
        level=config.logging.level,
        log_file=config.logging.log_file,
        json_format=config.logging.json_logs,
        fmt=config.logging.format,
    )
    return config


def _cluster_engine(config: PrimerConfig):
    from ..kernel.engine import ReconciliationEngine
    from ..resources.generator import ResourceSpecGenerator
    from ..store.kube import KubernetesStateStore, load_client_config

    store = KubernetesStateStore(load_client_config(config.controller.kubeconfig))
    return ReconciliationEngine(store, generator=ResourceSpecGenerator(config.images))


async def _serve(config: PrimerConfig) -> None:
    import uvicorn
    from ..deployment.api import create_fastapi_app
    from ..deployment.worker import ExportController

    controller = ExportController(_cluster_engine(config), config=config.controller)
    app = create_fastapi_app(controller, config)
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=config.api.host,
        port=config.api.port,
        log_config=None,
    ))

    controller_task = asyncio.create_task(controller.run())
    try:
        await server.serve()
    finally:
        await controller.stop()
        await asyncio.gather(controller_task, return_exceptions=True)


def run_command(parsed: argparse.Namespace, config: PrimerConfig) -> int:
    if parsed.workers:
        config.controller.workers = parsed.workers
    if parsed.namespace:
        config.controller.watch_namespace = parsed.namespace
    if parsed.port:
        config.api.port = parsed.port
    if parsed.host:
        config.api.host = parsed.host

    asyncio.run(_serve(config))
    return 0


def reconcile_command(parsed: argparse.Namespace, config: PrimerConfig) -> int:
    engine = _cluster_engine(config)
    result = engine.reconcile(parsed.key)
    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.failed else 0


def render_command(parsed: argparse.Namespace, config: PrimerConfig) -> int:
    from ..core.enums import ResourceKind
    from ..core.export import ExportRequest
    from ..kernel.catalog import applicable_kinds
    from ..resources.generator import ResourceSpecGenerator

    with open(parsed.filename) as f:
        request = ExportRequest.from_dict(yaml.safe_load(f) or {})
    if request.spec is None:
        logger.error(f"Invalid export {request.key}: {request.spec_error}")
        return 1

    if parsed.kind:
        try:
            kinds = [ResourceKind(parsed.kind)]
        except ValueError:
            logger.error(f"Unknown kind {parsed.kind}, expected one of: {', '.join(k.value for k in ResourceKind)}")
            return 2
    else:
        kinds = list(applicable_kinds(request.method))

    generator = ResourceSpecGenerator(config.images)
    manifests = [generator.generate(kind, request) for kind in kinds]
    if parsed.output == "json":
        print(json.dumps(manifests, indent=2))
    else:
        print(yaml.safe_dump_all(manifests, default_flow_style=False, sort_keys=False), end="")
    return 0


COMMANDS = {
    "run": run_command,
    "reconcile": reconcile_command,
    "render": render_command,
}


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the ``primer`` command.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parsed = build_parser().parse_args(args)
    config = _configure(parsed)

    try:
        return COMMANDS[parsed.command](parsed, config)
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 130
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
