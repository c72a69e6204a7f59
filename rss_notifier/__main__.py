"""Allow ``python -m rss_notifier``."""

import sys

from .app import main

sys.exit(main())
