import sys

from easymcp.main import main

sys.exit(main())
