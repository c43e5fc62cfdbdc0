from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from store.repository import ListingRepository


@pytest.fixture
def repository(tmp_path: Path) -> Iterator[ListingRepository]:
    store = ListingRepository(str(tmp_path / "listings.sqlite3"))
    store.connect()
    try:
        yield store
    finally:
        store.close()
