import sys

from recalculator.app import main

sys.exit(main())
