"""Entry point for running findterm.

Usage:
    python -m findterm --workspace . --scripts-dir ./scripts
    python -m findterm --workspace . run findFiles
"""

import sys

from findterm.cli import main

if __name__ == "__main__":
    sys.exit(main())
