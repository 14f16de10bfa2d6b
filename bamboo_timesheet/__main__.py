"""
Main entry point for running the package as a module.

Usage:
    python -m bamboo_timesheet add --task Development --from 2024-01-01 --to 2024-01-05
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
