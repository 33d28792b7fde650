"""
Entry point for running CompilerKit as a module.

Usage: python -m compilerkit [command] [options]
"""

from compilerkit.cli.parser import main

if __name__ == "__main__":
    main()
