"""
Command line for CompilerKit.

    compilerkit [-v|-q] [--config PATH] detect [--deep] [--json] [--refresh] [--no-cache]
    compilerkit [-v|-q] [--config PATH] run SOURCE [options]
    compilerkit [-v|-q] [--config PATH] cache {show,clear}

Each subcommand lives in compilerkit.cli.commands.<name> and exposes
run(args) -> int; modules are imported only when their command is used.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from compilerkit import __version__

logger = logging.getLogger(__name__)

COMMAND_MODULES = {
    "detect": "compilerkit.cli.commands.detect",
    "run": "compilerkit.cli.commands.run",
    "cache": "compilerkit.cli.commands.cache",
}

# (flag, level, format) in order of precedence
LOG_SETTINGS = [
    ("verbose", logging.DEBUG, "%(levelname)s [%(name)s] %(message)s"),
    ("quiet", logging.ERROR, "%(levelname)s: %(message)s"),
]
DEFAULT_LOG_SETTING = (logging.INFO, "%(message)s")


class CLI:
    """Argument parsing and command dispatch."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="compilerkit",
            description="CompilerKit - find, rank and run native C/C++ compilers",
            epilog='Use "compilerkit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"CompilerKit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ./compilerkit.yaml)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_detect_command(subparsers)
        self._add_run_command(subparsers)
        self._add_cache_command(subparsers)

        return parser

    def _add_detect_command(self, subparsers):
        """Add 'detect' subcommand."""
        parser = subparsers.add_parser(
            "detect",
            help="Detect installed compilers",
            description="Search for C/C++ compilers and rank them by priority",
        )
        parser.add_argument(
            "--deep",
            action="store_true",
            help="Also scan system directories recursively (slow)",
        )
        parser.add_argument(
            "--json", action="store_true", help="Print the result as JSON"
        )
        parser.add_argument(
            "--refresh",
            action="store_true",
            help="Ignore the cached result and detect again",
        )
        parser.add_argument(
            "--no-cache",
            action="store_true",
            help="Neither read nor write the detection cache",
        )

    def _add_run_command(self, subparsers):
        """Add 'run' subcommand."""
        parser = subparsers.add_parser(
            "run",
            help="Compile and run a source file",
            description="Compile a C/C++ source file and run it under time and output limits",
        )
        parser.add_argument("source", type=Path, help="Source file to compile")
        parser.add_argument(
            "--language",
            choices=["c", "cpp"],
            metavar="LANG",
            help="Source language (c|cpp) [default: from file suffix]",
        )
        parser.add_argument(
            "--std",
            metavar="STD",
            help="Language standard (e.g., c++17, c11)",
        )
        parser.add_argument(
            "--compiler",
            metavar="PATH",
            help="Compiler to use instead of the recommended one",
        )
        parser.add_argument(
            "--input",
            metavar="FILE",
            help="File fed to the program's stdin ('-' reads stdin)",
        )
        parser.add_argument(
            "--timeout-ms",
            type=int,
            metavar="N",
            help="Run time limit in milliseconds (0 for none)",
        )
        parser.add_argument(
            "--memory-mb",
            type=int,
            metavar="N",
            help="Output limit in megabytes",
        )

    def _add_cache_command(self, subparsers):
        """Add 'cache' subcommand with sub-subcommands."""
        parser = subparsers.add_parser(
            "cache",
            help="Manage the detection cache",
            description="Show or clear the cached detection result",
        )

        cache_subparsers = parser.add_subparsers(
            dest="cache_command", help="Cache commands", metavar="COMMAND"
        )
        cache_subparsers.add_parser(
            "show",
            help="Show cache location and contents",
            description="Show where the detection cache lives and what it holds",
        )
        cache_subparsers.add_parser(
            "clear",
            help="Delete the cached detection result",
            description="Delete the cached detection result",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Parse args (default: sys.argv) and run the selected command.

        Returns:
            The command's exit code; 1 when no command is given or the command
            raised, 130 on Ctrl-C
        """
        parsed = self.parse_args(args)
        self._configure_logging(parsed)

        if not parsed.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed)
        except KeyboardInterrupt:
            logger.info("Interrupted")
            return 130
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed.verbose:
                logger.exception("Traceback")
            return 1

    def _configure_logging(self, args):
        level, fmt = DEFAULT_LOG_SETTING
        for flag, flag_level, flag_fmt in LOG_SETTINGS:
            if getattr(args, flag, False):
                level, fmt = flag_level, flag_fmt
                break
        logging.basicConfig(level=level, format=fmt, force=True)

    def _dispatch_command(self, args) -> int:
        module_name = COMMAND_MODULES.get(args.command)
        if module_name is None:
            logger.error(f"Unknown command: {args.command}")
            return 1

        handler = getattr(importlib.import_module(module_name), "run", None)
        if handler is None:
            logger.error(f"{module_name} does not define run(args)")
            return 1
        return handler(args)


def main():
    """Console script entry point."""
    sys.exit(CLI().run())


if __name__ == "__main__":
    main()
