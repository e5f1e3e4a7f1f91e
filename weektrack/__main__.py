"""
Package entry point.

Allows running the application via:

    python -m weektrack

This simply forwards execution to weektrack.cli.main().
"""

from weektrack.cli import main

if __name__ == "__main__":
    main()
