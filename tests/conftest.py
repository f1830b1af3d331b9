import sys
from pathlib import Path


# Ensure tests can import project packages and the local fakes regardless of how pytest is invoked.
ROOT = Path(__file__).resolve().parents[1]
TESTS_DIR = Path(__file__).resolve().parent
for path in (str(ROOT), str(TESTS_DIR)):
    if path not in sys.path:
        sys.path.insert(0, path)
