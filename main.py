"""Main entry point for the curiosity configuration resolver."""
from __future__ import annotations

import sys

from app.startup import run_application


def main() -> None:
    """Application entry point."""
    sys.exit(run_application(sys.argv[1:]))


__all__ = ["main"]

if __name__ == "__main__":
    main()
