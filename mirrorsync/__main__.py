"""Run the mirrorsync CLI with ``python -m mirrorsync``."""

import sys

from mirrorsync.cli import main

sys.exit(main())
