import pytest

from app.utils.roles import Role, get_landing_route, is_supervisor, parse_role


@pytest.mark.parametrize("value,expected", [
    ("intern", Role.INTERN),
    (" Mentor ", Role.MENTOR),
    ("ADMIN", Role.ADMIN),
    ("owner", None),
    ("", None),
    (None, None),
])
def test_parse_role(value, expected):
    assert parse_role(value) == expected


def test_supervisors():
    assert is_supervisor(Role.ADMIN)
    assert is_supervisor(Role.SUPERUSER)
    assert not is_supervisor(Role.MENTOR)


def test_landing_routes():
    assert get_landing_route(Role.INTERN) == "/intern/dashboard"
    assert get_landing_route(Role.SUPERUSER) == "/super/dashboard"
