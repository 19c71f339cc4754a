"""
Command-line interface for autopaint.

Provides commands for turning a scene into plotter motion and for writing
a default configuration file.
"""

import argparse
import os
import sys

from autopaint.config import load_config, save_default_config
from autopaint.errors import AutoPaintError
from autopaint.tracer import configure_from, configure_tracer, get_tracer, trace_level


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="autopaint: convert vector artwork into pen plotter motion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Trace, fill and sequence a scene")
    run_parser.add_argument(
        "--scene", "-s",
        required=True,
        help="Scene JSON file",
    )
    run_parser.add_argument(
        "--out", "-o",
        required=True,
        help="Output directory",
    )
    run_parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file",
    )
    run_parser.add_argument(
        "--strategy",
        default=None,
        choices=["hatch", "pocket", "overlay"],
        help="Override the fill strategy",
    )
    run_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose geometry diagnostics",
    )
    run_parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable runtime tracing",
    )
    run_parser.add_argument(
        "--trace-level",
        default="INFO",
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
        default="autopaint_config.yaml",
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
    if args.strategy:
        config.fill.strategy = args.strategy
    if args.debug:
        config.debug.enabled = True

    if args.trace:
        configure_tracer(
            enabled=True,
            level=trace_level(args.trace_level, config.debug.enabled),
            file_path=args.trace_file,
            json_output=args.trace_json,
        )
    else:
        configure_from(config)

    tracer = get_tracer()

    try:
        from autopaint.events import RecordingSink
        from autopaint.export.preview_svg import create_preview_svg
        from autopaint.io.load_scene import load_scene
        from autopaint.io.save_artifacts import ensure_dir, save_json, save_svg
        from autopaint.models import MotionProgram
        from autopaint.pipeline import AutoPaintDriver, summarize_run

        with tracer.span("cli_run", module="cli"):
            scene = load_scene(args.scene)

            sink = RecordingSink()
            driver = AutoPaintDriver(config, sink)
            state = driver.run(scene)

            ensure_dir(args.out)
            save_json(MotionProgram(commands=sink.commands), os.path.join(args.out, "motion.json"))
            save_svg(
                create_preview_svg(state.ordered, state.palette, state.view_bounds, config),
                os.path.join(args.out, "preview.svg"),
            )
            summary = summarize_run(state, config)
            save_json(summary, os.path.join(args.out, "summary.json"))

        print(f"\nJob completed: {summary['phase']}")
        print(f"  Paths drawn: {summary['paths']}")
        print(f"  Motion commands: {summary['commands']}")
        print(f"  Tools used: {len(summary['tools'])}")
        print(f"  Travel distance: {summary['travel_distance']:.1f}")
        print(f"\nOutputs saved to: {args.out}/")
        print(f"  - motion.json")
        print(f"  - preview.svg")
        print(f"  - summary.json")

        return 0

    except (AutoPaintError, ValueError, FileNotFoundError) as e:
        tracer.event(f"Job failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1

    finally:
        tracer.config.close()


def handle_init_config(args):
    """Handle the init-config command."""
    save_default_config(args.out)
    print(f"Default configuration saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
