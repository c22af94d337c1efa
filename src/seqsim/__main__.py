"""Allow running as ``python -m seqsim``."""

import sys

from seqsim.cli import main

sys.exit(main())
