"""Main entry point for running mshio as a module."""

import sys

if __name__ == "__main__":
    from mshio.cli.app import main
    sys.exit(main())
