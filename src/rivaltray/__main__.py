"""Allow ``python -m rivaltray``"""

import sys

from .main import main

sys.exit(main())
