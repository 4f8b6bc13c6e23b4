"""pdfpoppler diagnostic command-line interface"""

import argparse
import os
import sys
from pathlib import Path
from typing import NoReturn, Optional

from pdfpoppler import __version__
from pdfpoppler.common.config import ConfigBuilder, ConfigLoader, PopplerConfig
from pdfpoppler.common.logging_setup import logging_setup
from pdfpoppler.inputs import StreamInput
from pdfpoppler.poppler import Poppler
from pdfpoppler.x11.display import displayReachable_check

__all__ = [
    "arguments_parse",
    "command_run",
    "config_build",
    "logLevelOverride_get",
    "main",
    "parser_create",
]


def arguments_parse(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments

    Args:
        argv: Arguments without the program name (sys.argv[1:] when None)

    Returns:
        Parsed CLI arguments.
    """
    return parser_create().parse_args(argv)


def parser_create() -> argparse.ArgumentParser:
    """
    Create fully populated argument parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="pdfpoppler",
        description="Resolve, inspect and run bundled Poppler command-line tools",
    )
    parser.add_argument("--version", action="version", version=f"pdfpoppler {__version__}")

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config file (default: $POPPLER_CONFIG, then standard locations)",
    )
    parser.add_argument(
        "--binary-path",
        type=str,
        default=None,
        dest="binary_path",
        help="Directory holding the Poppler executables (overrides config)",
    )
    parser.add_argument(
        "--binary-package",
        type=str,
        default=None,
        dest="binary_package",
        help="Importable binary package to take executables from (overrides config)",
    )
    parser.add_argument(
        "--poppler-version",
        type=str,
        default=None,
        dest="poppler_version",
        help="Poppler version to select, e.g. 24.02 (overrides config)",
    )
    parser.add_argument(
        "--prefer-xvfb",
        action="store_true",
        default=None,
        dest="prefer_xvfb",
        help="Prefer distributions bundling a virtual display",
    )
    parser.add_argument(
        "--no-prefer-xvfb",
        action="store_false",
        dest="prefer_xvfb",
        help="Prefer plain distributions and never wrap tools in a virtual display",
    )
    parser.add_argument(
        "--serverless", action="store_true", default=None, help="Treat the host as serverless"
    )
    parser.add_argument("--ci", action="store_true", default=None, help="Treat the host as CI")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds before a tool is terminated (overrides config)",
    )

    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging (overrides config)"
    )
    parser.add_argument(
        "--info", action="store_true", help="Enable info logging (overrides config)"
    )
    parser.add_argument(
        "--warning", action="store_true", help="Enable warning logging (overrides config)"
    )
    parser.add_argument(
        "--error", action="store_true", help="Enable error logging (overrides config)"
    )
    parser.add_argument(
        "--critical", action="store_true", help="Enable critical logging (overrides config)"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    subparsers.add_parser("resolve", help="Show the resolved binary directory and configuration")
    subparsers.add_parser("versions", help="List installed Poppler versions")

    env_parser = subparsers.add_parser("env", help="Show the environment tools run with")
    env_parser.add_argument(
        "--all", action="store_true", help="Show every variable, not only added or changed ones"
    )

    display_parser = subparsers.add_parser(
        "display-check", help="Check whether the tool display accepts X11 connections"
    )
    display_parser.add_argument(
        "--display", type=str, default=None, help="X11 display name (default: tool environment)"
    )

    run_parser = subparsers.add_parser("run", help="Run a Poppler tool and stream its stdout")
    run_parser.add_argument(
        "--input",
        type=str,
        default=None,
        help="PDF to pass to the tool ('-' reads it from stdin); replaces {input} in ARGS",
    )
    run_parser.add_argument("tool", help="Tool name, e.g. pdfinfo")
    run_parser.add_argument("tool_args", nargs=argparse.REMAINDER, help="Tool arguments")

    return parser


def logLevelOverride_get(args: argparse.Namespace) -> str | None:
    """
    Resolve explicit log level override flags.

    Args:
        args: Parsed CLI args.

    Returns:
        Selected log level or None.
    """
    if args.critical:
        return "CRITICAL"
    if args.error:
        return "ERROR"
    if args.warning:
        return "WARNING"
    if args.info:
        return "INFO"
    if args.debug:
        return "DEBUG"
    return None


def config_build(args: argparse.Namespace) -> PopplerConfig:
    """
    Translate CLI overrides into a PopplerConfig.

    Args:
        args: Parsed CLI args.

    Returns:
        Configuration holding only the overrides given on the command line.
    """
    builder = ConfigBuilder()
    if args.binary_path:
        builder.binaryPath_set(args.binary_path)
    elif args.binary_package:
        builder.binaryPackage_set(args.binary_package)
    if args.poppler_version:
        builder.version_set(args.poppler_version)
    if args.prefer_xvfb is not None:
        builder.preferVirtualDisplay_set(args.prefer_xvfb)
    if args.serverless:
        builder.serverless_set(True)
    if args.ci:
        builder.ci_set(True)
    if args.timeout is not None:
        builder.timeout_set(args.timeout)
    return builder.build()


def configPath_get(args: argparse.Namespace) -> Path | None:
    """Explicit config file from --config or $POPPLER_CONFIG."""
    config_path = args.config or os.environ.get("POPPLER_CONFIG")
    return Path(config_path).expanduser() if config_path else None


def command_run(args: argparse.Namespace, poppler: Poppler) -> int:
    """
    Execute the selected subcommand.

    Args:
        args: Parsed CLI args.
        poppler: Wrapper instance built from the CLI configuration.

    Returns:
        Process exit status.
    """
    if args.command == "resolve":
        return resolve_show(poppler)
    if args.command == "versions":
        return versions_show(poppler)
    if args.command == "env":
        return environment_show(poppler, args.all)
    if args.command == "display-check":
        return display_check(poppler, args.display)
    if args.command == "run":
        return tool_run(poppler, args.tool, args.tool_args, args.input)
    raise ValueError(f"Unknown command: {args.command}")


def resolve_show(poppler: Poppler) -> int:
    config = poppler.configuration_get()
    print(f"binary directory:  {poppler.binaryDirectory_get()}")
    print(f"version:           {poppler.version_get() or 'unknown'}")
    print(f"bundled xvfb:      {poppler.bundledVirtualDisplay_has()}")
    print(f"platform:          {config.platform}")
    print(f"serverless:        {config.is_serverless}")
    print(f"ci:                {config.is_ci}")
    print(f"prefer xvfb:       {config.prefer_virtual_display}")
    print(f"virtual display:   {poppler.virtualDisplay_required()}")
    return 0


def versions_show(poppler: Poppler) -> int:
    entries = poppler.versions_list()
    if not entries:
        print("No versioned distributions found")
        return 1
    for entry in entries:
        variant = "xvfb" if entry.has_virtual_display_bundle else "plain"
        print(f"{entry.version:<8} {variant:<6} {entry.directory}")
    return 0


def environment_show(poppler: Poppler, show_all: bool) -> int:
    env = poppler.environment_get()
    for name in sorted(env):
        if show_all or os.environ.get(name) != env[name]:
            print(f"{name}={env[name]}")
    return 0


def display_check(poppler: Poppler, display_name: str | None) -> int:
    display_name = display_name or poppler.environment_get().get("DISPLAY")
    if not display_name:
        print("No display configured")
        return 1
    geometry = displayReachable_check(display_name)
    if geometry is None:
        print(f"Display {display_name} is not reachable")
        return 1
    print(f"Display {display_name} reachable ({geometry.width}x{geometry.height})")
    return 0


def tool_run(poppler: Poppler, tool: str, tool_args: list[str], input_name: str | None) -> int:
    pdf_input: object = None
    if input_name == "-":
        pdf_input = StreamInput(sys.stdin.buffer)
    elif input_name:
        pdf_input = input_name

    out = sys.stdout.buffer
    with poppler.stream(tool, tool_args, pdf_input) as stream:
        for chunk in stream:
            out.write(chunk)
    out.flush()
    return 0


def main() -> NoReturn:
    """Main entry point for the pdfpoppler command"""
    args = arguments_parse()
    log_level_override: str | None = logLevelOverride_get(args)

    try:
        config_path = configPath_get(args)
        file_config = ConfigLoader.config_load(config_path)
        logging_setup(
            log_level_override or file_config.logging.level,
            file_config.logging.format,
            file_config.logging.file,
        )
        poppler = Poppler(config_build(args), config_file=config_path)
        sys.exit(command_run(args, poppler))

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
