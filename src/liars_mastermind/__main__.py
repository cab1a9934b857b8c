"""
Run the game from the command line.

Usage:
    python -m liars_mastermind
"""

from .interface.cli import main


if __name__ == "__main__":
    main()
