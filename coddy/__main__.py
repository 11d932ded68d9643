"""Allow ``python -m coddy``."""

import sys

from .cli import main

sys.exit(main())
