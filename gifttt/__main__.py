"""
gifttt module entrypoint

Allows launching gifttt directly via:
    python -m gifttt [run|check|get|set|list] ...
"""

import sys

from gifttt.cli import main

if __name__ == "__main__":
    sys.exit(main())
