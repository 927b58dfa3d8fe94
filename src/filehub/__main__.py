"""Allow ``python -m filehub``."""

import sys

from filehub.cli import main

sys.exit(main())
