import datetime as dt
import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if SRC_DIR.exists() and str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


def fixed_now() -> dt.datetime:
    return dt.datetime(2024, 1, 1, 12, 0, 0)
