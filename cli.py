#!/usr/bin/env python3
"""
Notepad CLI.

Entry point when running from a source checkout; the installed package
exposes the same app as the ``notepad`` console script.

Usage:
    python cli.py --help
    python cli.py add "Groceries. Milk, eggs"
    python cli.py list --all
"""

from notepad.cli.app import run

if __name__ == "__main__":
    run()
