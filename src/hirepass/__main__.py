import sys

from hirepass.cli import main

sys.exit(main())
