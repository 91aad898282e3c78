#!/usr/bin/env python3
"""
Feature database manager CLI.

This is a convenience wrapper for running the package directly from the project root.
For installed packages, use the db-manager command instead.
"""

from db_manager.__main__ import main

if __name__ == "__main__":
    main()
