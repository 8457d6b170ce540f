import sys

from iso5.cli import main

sys.exit(main())
