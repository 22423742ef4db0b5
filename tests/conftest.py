from __future__ import annotations

import pytest

from entapi.core.registry import clear_schema_cache


@pytest.fixture(autouse=True)
def _fresh_schema_cache():
    clear_schema_cache()
    yield
    clear_schema_cache()
