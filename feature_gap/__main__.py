import sys

from feature_gap.cli import main

sys.exit(main())
