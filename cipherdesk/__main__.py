"""Allow ``python -m cipherdesk``."""

import sys

from cipherdesk.cli.main import main

sys.exit(main())
