#!/usr/bin/env python3
"""
tpsim - record, redact and replay HTTP API fixtures

This is a convenience wrapper that calls the packaged implementation.
The actual implementation is in src/tpsim/cli.py

Usage:
    python tpsim-fixtures.py serve testdata/simulations --port 8080

For more information, run with --help
"""

import sys
from pathlib import Path

# Make the package importable without installing it
sys.path.insert(0, str(Path(__file__).parent / "src"))

from tpsim.cli import main

if __name__ == '__main__':
    main()
