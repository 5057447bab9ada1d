"""Allow ``python -m glosc``."""

import sys

from glosc.cli import main

if __name__ == "__main__":
    sys.exit(main())
