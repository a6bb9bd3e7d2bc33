"""python -m unsafe_surface 用のエントリーポイント。"""

import sys

from .main import main

sys.exit(main())
