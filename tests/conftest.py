import os as _os
import sys

import pytest

# Ensure project root is importable (so `import f12` and `import cli` work without installing)
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from f12 import db  # noqa: E402


@pytest.fixture(autouse=True)
def event_log(tmp_path):
    """Give every test its own sqlite event log."""
    db.set_db_path(str(tmp_path / "events.db"))
    db.init_db()
    yield
    db.set_db_path(None)
