#!/usr/bin/env python3
"""
TAP Runner - Entry Point Principale

Esegue un eseguibile di test (opzionalmente dopo una build), legge il suo
output TAP e mostra una dashboard con i risultati.

Usage:
    python run.py ./tests                              # Solo test
    python run.py -b make,tests -- ./build/tests       # Build + test
    python run.py -f '.at | "\\(.file):\\(.line)"' ./tests   # Con posizione
    python run.py -p -f '...' ./tests                  # Con anteprima sorgente
    python run.py --help                               # Aiuto
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional, Tuple

# Aggiungi la root al path
sys.path.insert(0, str(Path(__file__).parent))

from tap_runner import __version__
from tap_runner.cli_utils import ExitCode, exit_with_code, format_error, handle_keyboard_interrupt
from tap_runner.config_loader import ConfigLoader, GlobalSettings, LoggingConfig, RunConfig
from tap_runner.dashboard import run_dashboard
from tap_runner.errors import ConfigurationError, FilterCompileError
from tap_runner.models import Status
from tap_runner.preview import SourcePreview
from tap_runner.query import CompiledFilter
from tap_runner.runner import RunOrchestrator
from tap_runner.ui import ConsoleUI, get_ui

logger = logging.getLogger("tap_runner")


def split_command(value: str) -> List[str]:
    """Comando separato da virgole: 'make,-j4,tests' -> ['make', '-j4', 'tests']"""
    parts = value.split(',')
    if not parts[0].strip():
        raise argparse.ArgumentTypeError("build command must start with an executable")
    return parts


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments - clig.dev compliant"""
    parser = argparse.ArgumentParser(
        prog='tapr',
        description='TAP Runner - Run a test executable and browse its TAP results',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ./run_tests                          Run and show results
  %(prog)s -b cargo,build -- ./target/tests     Build first
  %(prog)s -f '.at | "\\(.file):\\(.line)"' ./t   Locate failures
  %(prog)s -p -f '.at | "\\(.file):\\(.line)"' ./t  Preview failing source

Keys:
  r  re-run    j/k  next/previous failure    Esc  clear    q  quit

Environment:
  NO_COLOR      Disable colored output
  DEBUG         Enable debug logging (same as --debug)
        """
    )

    # ═══════════════════════════════════════════════════════════════════
    # Run
    # ═══════════════════════════════════════════════════════════════════
    run_group = parser.add_argument_group('Run')
    run_group.add_argument(
        '-b', '--build',
        type=split_command,
        metavar='CMD,ARG,...',
        help='Build command to run before the tests, comma separated'
    )
    run_group.add_argument(
        '-f', '--filter',
        type=str,
        metavar='JQ',
        help='jq filter producing "file:line" from a failure\'s YAML diagnostics'
    )
    run_group.add_argument(
        '-p', '--preview',
        action='store_true',
        help='Show the source around the failing line (requires --filter and bat)'
    )
    run_group.add_argument(
        'test',
        nargs=argparse.REMAINDER,
        metavar='TEST_CMD [ARGS...]',
        help='Test executable and its arguments'
    )

    # ═══════════════════════════════════════════════════════════════════
    # Output
    # ═══════════════════════════════════════════════════════════════════
    output_group = parser.add_argument_group('Output')
    output_group.add_argument(
        '--config',
        type=str,
        metavar='DIR',
        help='Configuration directory (default: ./config)'
    )
    output_group.add_argument(
        '--log-file',
        type=str,
        metavar='PATH',
        help='Write logs to PATH (overrides logging.file)'
    )
    output_group.add_argument(
        '--no-color',
        action='store_true',
        help='Disable colors (or: NO_COLOR=1)'
    )
    output_group.add_argument(
        '--debug',
        action='store_true',
        help='Verbose debug logging (or: DEBUG=1)'
    )
    output_group.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    args = parser.parse_args(argv)

    if args.test and args.test[0] == '--':
        args.test = args.test[1:]
    if not args.test:
        parser.error('the test command is required')

    return args


def setup_logging(config: LoggingConfig, log_file: Optional[str] = None,
                  debug: bool = False) -> None:
    """
    Logging su file: il terminale appartiene alla dashboard.

    Senza file configurato i log vengono scartati.
    """
    path = log_file or config.file
    if not path:
        logger.addHandler(logging.NullHandler())
        return

    level = logging.DEBUG if debug else getattr(logging, config.level, logging.INFO)
    handler = logging.FileHandler(path, encoding='utf-8')
    handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)-8s %(name)s: %(message)s'
    ))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def build_run(args: argparse.Namespace,
              settings: GlobalSettings) -> Tuple[RunOrchestrator, Optional[SourcePreview]]:
    """
    Valida le opzioni e prepara orchestratore e anteprima.

    Raises:
        ConfigurationError: opzioni incompatibili o highlighter mancante
        FilterCompileError: filtro non valido
    """
    run_config = RunConfig(
        test_command=args.test,
        build_command=args.build,
        filter_text=args.filter,
        preview=args.preview,
    )
    run_config.validate()

    location_filter = None
    if run_config.filter_text:
        location_filter = CompiledFilter.compile(run_config.filter_text)

    preview = None
    if run_config.preview:
        preview = SourcePreview(settings.preview.highlighter)
        preview.check_available()

    orchestrator = RunOrchestrator(
        test_command=run_config.test_command,
        build_command=run_config.build_command,
        location_filter=location_filter,
    )
    return orchestrator, preview


def print_summary(ui: ConsoleUI, orchestrator: RunOrchestrator) -> None:
    """Riepilogo dell'ultima run, stampato all'uscita"""
    statuses = orchestrator.statuses
    if not statuses:
        if orchestrator.error is not None:
            ui.error(orchestrator.error.message)
        return

    passed = statuses.count(Status.SUCCESS)
    failed = statuses.count(Status.FAIL)
    skipped = statuses.count(Status.SKIP)
    summary = f"{passed} passed, {failed} failed, {skipped} skipped"

    if failed:
        ui.error(summary)
        ui.table(
            ["#", "Test", "Location"],
            [
                [f.identifier, f.description or "", str(f.location) if f.location else ""]
                for f in orchestrator.failures
            ],
        )
    else:
        ui.success(summary)

    if orchestrator.error is not None:
        ui.warning(orchestrator.error.message)


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point - clig.dev compliant"""
    # Ctrl+C handler pulito (fuori dalla dashboard)
    signal.signal(signal.SIGINT, lambda s, f: handle_keyboard_interrupt())

    args = parse_args(argv)

    # Settings prima di tutto: config/.env puo' impostare NO_COLOR e DEBUG
    try:
        settings = ConfigLoader(args.config).load_global_settings()
    except ConfigurationError as e:
        get_ui(use_colors=not args.no_color).error(format_error(str(e), code=ExitCode.CONFIG))
        sys.exit(ExitCode.CONFIG)

    if args.no_color:
        settings.ui.colors = False
    ui = get_ui(use_colors=settings.ui.colors)

    try:
        setup_logging(settings.logging, args.log_file, args.debug)
        orchestrator, preview = build_run(args, settings)
    except (ConfigurationError, FilterCompileError) as e:
        ui.error(format_error(str(e), code=ExitCode.CONFIG))
        sys.exit(ExitCode.CONFIG)

    if not sys.stdin.isatty():
        exit_with_code(ExitCode.USAGE_ERROR, format_error(
            "tapr needs an interactive terminal",
            suggestion="run it from a shell, not from a pipe or a script",
        ))

    logger.info("Starting tapr %s: %s", __version__, " ".join(args.test))
    run_dashboard(orchestrator, settings, preview)
    print_summary(ui, orchestrator)
    sys.exit(ExitCode.SUCCESS)


if __name__ == "__main__":
    main()
