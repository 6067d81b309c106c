"""
Тесты для проверки прав по ролям.
"""

import pytest

from repair_client.core.permissions import Action, can_perform


@pytest.mark.parametrize("action", list(Action))
def test_anonymous_user_can_do_nothing(action):
    assert can_perform(None, action) is False


@pytest.mark.parametrize("action", list(Action))
def test_admin_can_do_everything(action):
    assert can_perform("admin", action) is True


@pytest.mark.parametrize(
    "action, expected",
    [
        (Action.VIEW_DASHBOARD, True),
        (Action.VIEW_REQUESTS, True),
        (Action.CREATE_REQUEST, True),
        (Action.EDIT_REQUEST, True),
        (Action.DELETE_REQUEST, True),
        (Action.MANAGE_CATEGORIES, False),
        (Action.MANAGE_USERS, False),
        (Action.MANAGE_SETTINGS, False),
    ],
)
def test_technician_permissions(action, expected):
    assert can_perform("technician", action) is expected


@pytest.mark.parametrize(
    "action, expected",
    [
        (Action.VIEW_DASHBOARD, True),
        (Action.VIEW_REQUESTS, True),
        (Action.CREATE_REQUEST, True),
        (Action.EDIT_REQUEST, False),
        (Action.DELETE_REQUEST, False),
        (Action.MANAGE_USERS, False),
    ],
)
def test_requester_permissions(action, expected):
    assert can_perform("requester", action) is expected


def test_unknown_role_is_denied():
    assert can_perform("guest", Action.VIEW_REQUESTS) is False
