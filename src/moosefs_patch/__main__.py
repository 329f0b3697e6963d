import sys

from moosefs_patch.cli import main

sys.exit(main())
