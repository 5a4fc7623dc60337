"""
Entry point for running SpaceComply as a module.

Usage:
    python -m spacecomply [command] [options]
"""

from spacecomply.cli import main

if __name__ == "__main__":
    main()
