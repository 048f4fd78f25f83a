"""Allow running the service with ``python -m weatherflow``."""

import sys

from .startup import main

sys.exit(main())
