from __future__ import annotations

import pytest

from fakes import ListSink


@pytest.fixture
def sink() -> ListSink:
    return ListSink()
