from types import SimpleNamespace

import pytest

from contentflow.errors import NotAuthorized, ValidationError
from contentflow.services.ownership import assert_owner, is_owner


class Pillar(SimpleNamespace):
    pass


def test_owner_passes():
    assert_owner(Pillar(id="p1", created_by_id="u1"), "u1")


def test_non_owner_is_not_authorized():
    with pytest.raises(NotAuthorized) as exc:
        assert_owner(Pillar(id="p1", created_by_id="u1"), "u2", action="delete")
    assert exc.value.status_code == 403
    assert exc.value.message == "Not authorized to delete this pillar"


def test_not_authorized_is_a_distinct_kind_from_validation():
    with pytest.raises(NotAuthorized) as exc:
        assert_owner(Pillar(id="p1", created_by_id="u1"), "u2")
    assert not isinstance(exc.value, ValidationError)


def test_custom_owner_field():
    niche = SimpleNamespace(id="n1", user_id="u1")
    assert is_owner(niche, "u1", field="user_id")
    assert not is_owner(niche, "u1")
    with pytest.raises(NotAuthorized):
        assert_owner(niche, "u2", field="user_id")


def test_missing_entity_is_never_owned():
    assert not is_owner(None, "u1")
