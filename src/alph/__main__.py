import sys

from alph.cli.main import main

sys.exit(main())
