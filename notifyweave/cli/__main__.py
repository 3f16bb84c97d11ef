"""
NotifyWeave CLI entry point.

Usage:
    python -m notifyweave.cli weave <module>
    python -m notifyweave.cli inspect <module>
"""

import sys
from .main import main

if __name__ == "__main__":
    sys.exit(main())
