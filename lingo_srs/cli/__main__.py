"""
Entry point for running the CLI as a module.

Usage:
    python -m lingo_srs.cli due
    python -m lingo_srs.cli stats
    python -m lingo_srs.cli --help
"""
from .main import main

if __name__ == "__main__":
    main()
