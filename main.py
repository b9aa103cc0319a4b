#!/usr/bin/env python3
"""E20 simulator command line entry point for a source checkout.

Usage:
    python main.py programs/sum_10.bin
    python main.py --trace programs/sum_10.bin
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from e20sim.cli import main


if __name__ == "__main__":
    sys.exit(main())
