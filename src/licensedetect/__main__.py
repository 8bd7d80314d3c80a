# __main__.py
# SPDX-License-Identifier: MIT

import sys

from .cli.main import main

if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
