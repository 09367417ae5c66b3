import sys

from bond_transfer_monitor.main import main

sys.exit(main())
