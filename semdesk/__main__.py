"""
Package entry point.

Allows running the application via:

    python -m semdesk

This simply forwards execution to semdesk.cli.main().
"""

from semdesk.cli import main

if __name__ == "__main__":
    main()
