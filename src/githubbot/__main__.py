import sys

from githubbot.cli import main

sys.exit(main())
