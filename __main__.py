#!/usr/bin/env python3
"""
Wealth RM - Main entry point.
"""

import sys
from pathlib import Path

# Ensure package is in path
sys.path.insert(0, str(Path(__file__).parent))

from cli import main

if __name__ == "__main__":
    sys.exit(main())
