"""Allow ``python -m reservation_engine``."""

import sys

from reservation_engine.cli import main

sys.exit(main())
