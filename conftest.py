"""
Root conftest.
Puts src on the path for runs without an editable install.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))
