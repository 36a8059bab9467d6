import sys

from pagescoop.cli import main

sys.exit(main())
