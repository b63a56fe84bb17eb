"""
Run the geossh collector: python main.py
"""

import sys
from pathlib import Path

# Add src so we can run without installing the package
SRC_ROOT = Path(__file__).resolve().parent / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from collector.app import main  # noqa: E402

if __name__ == "__main__":
    main()
