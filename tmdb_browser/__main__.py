"""
Entry point for running the browser as a module.

Usage:
    python -m tmdb_browser <command>
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
