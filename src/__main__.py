"""
Module entry point for running the mirror from the source tree.

Usage:
    python src run                   # Scan once
    python src run --pr <PR URL>     # Scan once, deliver to one pull request
    python src service               # Periodic scans
"""

from __future__ import annotations
from cli import main

if __name__ == "__main__":
    main()
