import sys

from d1flash.cli import main

sys.exit(main())
