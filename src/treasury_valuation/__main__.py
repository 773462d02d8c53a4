import sys

from treasury_valuation.cli import main

sys.exit(main())
