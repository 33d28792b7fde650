"""
CompilerKit - discover, rank and run native C/C++ compilers.
"""

__version__ = "0.1.0"
