"""
Package entry point.

Allows running the application via:

    python -m weekgrid

This simply forwards execution to weekgrid.cli.main().
"""

from weekgrid.cli import main

if __name__ == "__main__":
    main()
