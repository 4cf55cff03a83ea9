"""
Command-line utility for static settings files and the shared log.

Usage:
    config-forge normalize myapp.settings:ServerSettings config/server.json
    config-forge regenerate myapp.settings:ServerSettings config/server.json
    config-forge show myapp.settings:ServerSettings config/server.json
    config-forge log "deploy finished" --category Deploy --level WARN
"""

import argparse
import importlib
import json
import logging
import sys
from typing import List, Optional

from colorama import Fore, Style, just_fix_windows_console

from config_forge.configs.config_exceptions import ConfigError
from config_forge.configs.logging_config import LoggerConfig
from config_forge.context import ForgeContext, get_context
from config_forge.exceptions import ConfigForgeError
from config_forge.log.log_levels import LogLevel


def resolve_schema(reference: str) -> type:
    """
    Import a settings class given as ``package.module:ClassName``.

    Raises:
        ConfigError: If the module or class cannot be found
    """
    module_name, sep, class_name = reference.partition(":")
    if not sep or not module_name or not class_name:
        raise ConfigError(f"schema must look like 'package.module:ClassName', got '{reference}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"cannot import module '{module_name}'", e) from e

    schema = module
    for part in class_name.split("."):
        schema = getattr(schema, part, None)
        if schema is None:
            raise ConfigError(f"'{module_name}' has no attribute '{class_name}'")
    if not isinstance(schema, type):
        raise ConfigError(f"'{reference}' is not a class")
    return schema


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="config-forge",
        description="Maintain static settings files and write to the shared log.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("normalize", "Load a settings file and write it back in canonical form."),
        ("regenerate", "Reset a settings file to the schema defaults."),
        ("show", "Load a settings file and print its canonical document."),
    ):
        command = subparsers.add_parser(name, help=help_text)
        command.add_argument("schema", help="Settings class as package.module:ClassName")
        command.add_argument("path", help="Settings file")

    log_parser = subparsers.add_parser("log", help="Write one line to the shared log.")
    log_parser.add_argument("message", help="Message to write")
    log_parser.add_argument("--category", "-c", default="CLI", help="Log category")
    log_parser.add_argument(
        "--level",
        "-l",
        default=LogLevel.INFO.name,
        choices=[level.name for level in LogLevel],
        help="Log level",
    )
    log_parser.add_argument(
        "--config",
        default=LoggerConfig.FILE_SOURCE,
        help="Logger settings file",
    )
    return parser


def run(args: argparse.Namespace, context: ForgeContext) -> int:
    """Execute a parsed command and return the process exit code."""
    store = context.store

    if args.command == "log":
        writer = context.start_logging(args.config)
        context.logger(args.category).write_line(args.message, LogLevel[args.level])
        print(f"{Fore.GREEN}written to {writer.path}{Style.RESET_ALL}")
        return 0

    schema = resolve_schema(args.schema)

    if args.command == "regenerate":
        if not store.regenerate(schema, args.path):
            print(f"{Fore.RED}{args.schema} has no set_defaults(){Style.RESET_ALL}")
            return 1
        print(f"{Fore.GREEN}regenerated {args.path}{Style.RESET_ALL}")
        return 0

    outcome = store.load(schema, args.path)
    color = Fore.YELLOW if outcome.regenerated else Fore.GREEN
    print(f"{color}{args.path}: {outcome.value}{Style.RESET_ALL}")

    if args.command == "normalize":
        store.save(schema, args.path)
    elif args.command == "show":
        print(json.dumps(store.to_document(schema), indent=2, ensure_ascii=False))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the ``config-forge`` command."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    just_fix_windows_console()

    args = build_parser().parse_args(argv)
    context = get_context()
    try:
        return run(args, context)
    except (ConfigForgeError, OSError) as e:
        print(f"{Fore.RED}Error: {e}{Style.RESET_ALL}", file=sys.stderr)
        return 1
    finally:
        context.close()


if __name__ == "__main__":
    sys.exit(main())
