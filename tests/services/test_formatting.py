"""
Тесты для форматирования дат и карточек заявок.
"""

from datetime import datetime, timezone

import pytest

from conftest import make_request_json
from repair_client.core.config import settings
from repair_client.models.request import RepairRequest
from repair_client.services.formatting import (
    NOT_SPECIFIED,
    format_datetime,
    format_request_card,
)


@pytest.fixture(autouse=True)
def moscow_timezone(monkeypatch):
    monkeypatch.setattr(settings, "display_timezone", "Europe/Moscow")


def test_format_datetime_uses_display_timezone():
    dt = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    assert format_datetime(dt) == "01.05.2024 в 13:00"
    assert format_datetime(dt, with_time=False) == "01.05.2024"


def test_naive_datetime_is_treated_as_utc():
    assert format_datetime(datetime(2024, 5, 1, 10, 0)) == "01.05.2024 в 13:00"


def test_missing_datetime():
    assert format_datetime(None) == NOT_SPECIFIED


def test_request_card_escapes_html_and_shows_rejection():
    request = RepairRequest.model_validate(
        make_request_json(
            7,
            title="<script>",
            status="rejected",
            rejectionReason="Нет запчастей",
            cost=1500,
        )
    )

    card = format_request_card(request)

    assert "&lt;script&gt;" in card
    assert "Причина отказа:</b> Нет запчастей" in card
    assert "1500.00" in card
    assert "01.05.2024 в 13:00" in card
