"""nbi entry point.

Usage::

    python -m nbi [COMMAND] ...
"""

from __future__ import annotations

import sys

from nbi.cli import main

if __name__ == "__main__":
    sys.exit(main())
