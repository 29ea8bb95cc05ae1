import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from warden import events


@pytest.fixture(autouse=True)
def event_log(tmp_path):
    """Route the audit trail into the test's temp dir."""
    path = tmp_path / "events.jsonl"
    events.configure(str(path))
    yield path
    events.configure(events.DEFAULT_EVENT_LOG)
