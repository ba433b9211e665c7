"""
Package entry point.

Allows running the application via:

    python -m oskmanager

This simply forwards execution to oskmanager.cli.main().
"""

from oskmanager.cli import main

if __name__ == "__main__":
    main()
