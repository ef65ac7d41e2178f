"""Allow ``python -m s3_website_reconciler``."""

import sys

from .cli import main

sys.exit(main())
