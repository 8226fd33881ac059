import sys

from writeup_hunter.cli import main

sys.exit(main())
