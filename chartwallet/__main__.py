import sys

from chartwallet.cli import main

sys.exit(main())
