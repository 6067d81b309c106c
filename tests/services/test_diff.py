"""
Тесты для подготовки тел запросов на изменение.
"""

import pytest

from conftest import make_request_json
from repair_client.core.errors import FormValidationError
from repair_client.models.request import RepairRequest, RequestEditForm
from repair_client.services.diff import (
    build_category_payload,
    build_request_update,
    build_user_payload,
)


@pytest.fixture
def stored() -> RepairRequest:
    return RepairRequest.model_validate(
        make_request_json(status="in_progress", technicianId=20, cost=1500)
    )


def test_unchanged_form_produces_empty_update(stored):
    form = RequestEditForm.from_request(stored)

    assert build_request_update(stored, form) == {}


def test_only_status_change_is_sent(stored):
    """Тест: Смена только статуса отправляет ровно одно поле."""
    form = RequestEditForm.from_request(stored).model_copy(
        update={"status": "completed"}
    )

    assert build_request_update(stored, form) == {"status": "completed"}


def test_numbers_are_compared_by_value(stored):
    form = RequestEditForm.from_request(stored).model_copy(
        update={"technician_id": "20", "cost": "1500.0"}
    )

    assert build_request_update(stored, form) == {}


def test_changed_numbers_are_sent_as_numbers(stored):
    form = RequestEditForm.from_request(stored).model_copy(
        update={"technician_id": "21", "cost": "1999.5"}
    )

    assert build_request_update(stored, form) == {"technicianId": 21, "cost": 1999.5}


def test_blank_numbers_mean_no_change(stored):
    form = RequestEditForm.from_request(stored).model_copy(
        update={"technician_id": "", "cost": "  "}
    )

    assert build_request_update(stored, form) == {}


def test_rejection_sends_status_and_reason(stored):
    form = RequestEditForm.from_request(stored).model_copy(
        update={"status": "rejected", "rejection_reason": "Нет запчастей"}
    )

    assert build_request_update(stored, form) == {
        "status": "rejected",
        "rejectionReason": "Нет запчастей",
    }


@pytest.mark.parametrize("cost", ["abc", "-5"])
def test_invalid_cost_is_rejected(stored, cost):
    form = RequestEditForm.from_request(stored).model_copy(update={"cost": cost})

    with pytest.raises(FormValidationError):
        build_request_update(stored, form)


def test_category_payload_is_trimmed():
    assert build_category_payload("  Сантехника ", None) == {
        "name": "Сантехника",
        "description": "",
    }


def test_user_payload_for_edit_omits_empty_password():
    form = {
        "username": "bob",
        "email": "bob@example.com",
        "fullName": "Bob Fixer",
        "role": "technician",
        "password": "",
    }

    payload = build_user_payload(form, editing=True)

    assert "password" not in payload
    assert payload["role"] == "technician"


@pytest.mark.parametrize(
    "form",
    [
        {"username": "", "email": "a@b.c", "fullName": "A", "password": "secret"},
        {"username": "a", "email": "not-an-email", "fullName": "A", "password": "secret"},
        {"username": "a", "email": "a@b.c", "fullName": "A", "password": "123"},
        {"username": "a", "email": "a@b.c", "fullName": "A", "password": ""},
    ],
)
def test_user_payload_validation(form):
    with pytest.raises(FormValidationError):
        build_user_payload(form, editing=False)
