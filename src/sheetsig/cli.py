"""
Command-line interface for sheetsig.

Provides commands for processing a sheet scene and creating a default config.
"""

import argparse
import os
import sys

from sheetsig.config import load_config, save_default_config
from sheetsig.tracer import configure_tracer, get_tracer


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="sheetsig: build compound glyphs, repair alteration signs and retrieve ledgers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Process a sheet scene")
    run_parser.add_argument(
        "--scene", "-s",
        required=True,
        help="Path to the sheet scene JSON file",
    )
    run_parser.add_argument(
        "--out", "-o",
        required=True,
        help="Path of the JSON report to write",
    )
    run_parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file",
    )
    run_parser.add_argument(
        "--votes",
        default=None,
        help="Path to recorded votes YAML file (overrides config)",
    )
    run_parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable runtime tracing",
    )
    run_parser.add_argument(
        "--trace-level",
        default=None,
        choices=["ERROR", "WARN", "INFO", "DEBUG"],
        help="Trace log level",
    )
    run_parser.add_argument(
        "--trace-file",
        default=None,
        help="Path to write trace logs",
    )
    run_parser.add_argument(
        "--trace-json",
        action="store_true",
        help="Enable JSON trace output",
    )

    # Init config command
    init_parser = subparsers.add_parser("init-config", help="Create default config file")
    init_parser.add_argument(
        "--out", "-o",
        default="sheetsig_config.yaml",
        help="Output path for config file",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "run":
        return handle_run(args)
    elif args.command == "init-config":
        return handle_init_config(args)

    return 0


def handle_run(args):
    """Handle the run command."""
    config = load_config(args.config)
    tracing = config.tracing

    configure_tracer(
        enabled=args.trace or tracing.enabled,
        level=args.trace_level or tracing.level,
        file_path=args.trace_file or tracing.file_path,
        json_output=args.trace_json or tracing.json_output,
    )

    if args.votes:
        config.evaluator.votes_path = args.votes

    tracer = get_tracer()

    try:
        from sheetsig.io.scene import load_sheet, save_report
        from sheetsig.pipeline import process_sheet

        with tracer.span("cli_run", module="cli"):
            sheet = load_sheet(args.scene, relaxed_margin=config.sig.relaxed_margin)
            report = process_sheet(sheet, config=config)
            save_report(report, args.out)

        print("\nSheet processed.")
        print(f"  Systems: {len(report.systems)}")
        print(f"  Compounds: {sum(len(s.compounds) for s in report.systems)}")
        print(f"  Alteration signs fixed: {sum(s.alter_fixes for s in report.systems)}")
        print(f"  Ledgers: {sum(s.ledger_count for s in report.systems)}")
        print(f"\nReport saved to: {args.out}")

        if report.failed_systems:
            print(f"\n[!] Failed systems: {report.failed_systems}")
            return 1

        return 0

    except Exception as e:
        tracer.event(f"Run failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1


def handle_init_config(args):
    """Handle the init-config command."""
    directory = os.path.dirname(args.out)
    if directory:
        os.makedirs(directory, exist_ok=True)
    save_default_config(args.out)
    print(f"Default configuration saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
