import sys

from xcontext.cli import main

sys.exit(main())
