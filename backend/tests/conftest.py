from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# The application engine is built from settings at import time.
_DB_DIR = tempfile.mkdtemp(prefix="soundwave-tests-")
os.environ.setdefault("SOUNDWAVE_DATABASE_DSN", f"sqlite+aiosqlite:///{_DB_DIR}/api.db")
os.environ.setdefault("SOUNDWAVE_SERVICE_TOKEN", "")
