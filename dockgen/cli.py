"""dockgen command-line interface.

Subcommands:
  build:dockerfile   Generate Dockerfile for specified configuration
  build:image        Build Docker image for specified configuration
  deploy:hub         Deploy image to Docker Hub
  deploy:manifest    Create and deploy multi-architecture manifest
  test:local         Test generated configuration locally
  validate:config    Validate configuration for specified setup
  help               Show detailed help for one subcommand

Every failure goes through one ``ErrorHandler``. When the handler recovers
(waits out a retry delay) the command is run again, at most
``max_retries + 1`` times in total; an unrecovered failure exits with 1.
"""
from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
from typing import Any, NoReturn

from rich.console import Console

from .commands import COMMANDS, Command
from .config import Settings, load_settings
from .error_handling import ErrorHandler, ErrorHandlerOptions
from .errors.metrics import ErrorMetrics
from .errors.records import DockgenError
from .errors.recovery import Sleep
from .errors.reporting import ConsoleSink, DiagnosticSink, LoggingSink
from .errors.taxonomy import ErrorKind
from .utils.logging_utils import setup_logging
from .version import get_version

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """Raises ARGUMENT errors instead of exiting so they get a diagnostic."""

    def error(self, message: str) -> NoReturn:
        raise DockgenError(ErrorKind.ARGUMENT, message, details={"command": self.prog})


def build_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(
        prog='dockgen',
        description='Generate hardened, multi-architecture Docker images for web server setups with Nginx and PHP',
    )
    p.add_argument('--version', action='version', version=f'%(prog)s {get_version()}')
    p.add_argument('--config', default=None, help='Settings file (YAML or JSON) [default: ./dockgen.yaml if present]')
    p.add_argument('--log-level', default=None, help='Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)')
    p.add_argument('--log-file', default=None, help='Also write logs to this file')
    p.add_argument('--metrics-textfile', default=None, help='Write Prometheus metrics to this file on exit')
    p.add_argument('--no-color-diagnostics', action='store_true', help='Render diagnostics without colour')
    sub = p.add_subparsers(dest='cmd')

    for name, cls in COMMANDS.items():
        sp = sub.add_parser(name, help=cls.summary, description=cls.summary)
        cls.configure_parser(sp)

    hp = sub.add_parser('help', help='Show detailed help for a subcommand')
    hp.add_argument('topic', nargs='?', choices=sorted(COMMANDS), help='Subcommand name')
    return p


def apply_cli_overrides(settings: Settings, ns: argparse.Namespace) -> Settings:
    if ns.log_level:
        settings.log_level = ns.log_level.upper()
    if ns.log_file:
        settings.log_file = ns.log_file
    if ns.metrics_textfile:
        settings.metrics_textfile = ns.metrics_textfile
    return settings


def build_sink(settings: Settings, no_color: bool = False) -> DiagnosticSink:
    if settings.console_diagnostics:
        return ConsoleSink(Console(stderr=True, no_color=no_color))
    return LoggingSink()


def build_handler(
    settings: Settings,
    sink: DiagnosticSink,
    metrics: ErrorMetrics | None = None,
    sleep: Sleep = asyncio.sleep,
) -> ErrorHandler:
    return ErrorHandler(settings.error_handler, sink=sink, metrics=metrics, sleep=sleep)


async def _report_and_fail(failure: DockgenError, sink: DiagnosticSink) -> int:
    handler = ErrorHandler(ErrorHandlerOptions(enable_recovery=False), sink=sink)
    with contextlib.suppress(DockgenError):
        await handler.handle(failure)
    return 1


async def run_command(handler: ErrorHandler, command: Command, ns: argparse.Namespace) -> int:
    """Run ``command`` until it succeeds, the handler gives up, or attempts run out."""
    attempts = handler.options.max_retries + 1
    context = {"command": command.name}
    for attempt in range(1, attempts + 1):
        try:
            args = command.parse_args(ns)
            result: Any = await command.execute(args)
        except Exception as exc:
            try:
                await handler.handle(exc, context)
            except DockgenError as final:
                logger.debug("%s failed: %s", command.name, final.message)
                return 1
            if attempt < attempts:
                logger.info("Retrying %s (attempt %d/%d)", command.name, attempt + 1, attempts)
            continue
        if result is not None:
            print(result)
        return 0
    logger.error("%s still failing after %d attempts", command.name, attempts)
    return 1


async def run(
    argv: list[str] | None = None,
    *,
    sink: DiagnosticSink | None = None,
    sleep: Sleep = asyncio.sleep,
) -> int:
    parser = build_parser()
    try:
        ns = parser.parse_args(argv)
    except DockgenError as e:
        return await _report_and_fail(e, sink or ConsoleSink())

    if not ns.cmd:
        parser.print_help()
        return 0
    if ns.cmd == 'help':
        if ns.topic:
            print(COMMANDS[ns.topic]().help())
        else:
            parser.print_help()
        return 0

    try:
        settings = apply_cli_overrides(load_settings(ns.config), ns)
    except DockgenError as e:
        return await _report_and_fail(e, sink or ConsoleSink(Console(stderr=True, no_color=ns.no_color_diagnostics)))

    setup_logging(settings.log_level, settings.log_file)
    metrics = ErrorMetrics()
    handler = build_handler(settings, sink or build_sink(settings, ns.no_color_diagnostics), metrics, sleep)
    command = COMMANDS[ns.cmd](output_dir=settings.output_dir, registry=settings.registry)
    code = await run_command(handler, command, ns)

    if settings.metrics_textfile:
        try:
            metrics.write_textfile(settings.metrics_textfile)
        except OSError as e:
            logger.warning("could not write metrics to %s: %s", settings.metrics_textfile, e)
    stats = handler.get_statistics()
    if stats["total"]:
        logger.debug("error summary: %s", stats)
    return code


def main(argv: list[str] | None = None) -> int:
    return asyncio.run(run(argv))


if __name__ == '__main__':  # pragma: no cover
    raise SystemExit(main())
