import sys

from hierflow.cli import main

sys.exit(main())
