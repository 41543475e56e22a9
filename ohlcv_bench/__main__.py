import sys

from ohlcv_bench.cli import main

sys.exit(main())
