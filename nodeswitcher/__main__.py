import sys

from nodeswitcher.main import main

sys.exit(main())
