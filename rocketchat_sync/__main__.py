import sys

from rocketchat_sync.cli import main

sys.exit(main())
