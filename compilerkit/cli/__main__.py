"""
Entry point for running CompilerKit CLI as a module.

Usage: python -m compilerkit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
