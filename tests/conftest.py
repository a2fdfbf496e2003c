from __future__ import annotations

import itertools
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest

from deal_reconcile.models import Deal

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_deal() -> Callable[..., Deal]:
    def _make(
        deal_id: str,
        name: str = "Juan Perez",
        phone: str | None = None,
        chat_link: str | None = None,
        created: datetime = BASE_TIME,
        modified: datetime | None = None,
        **extra: Any,
    ) -> Deal:
        return Deal(
            deal_id=deal_id,
            name=name,
            created_time=created,
            modified_time=modified or created,
            phone=phone,
            chat_link=chat_link,
            **extra,
        )

    return _make


@pytest.fixture
def sequential_ids() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"
