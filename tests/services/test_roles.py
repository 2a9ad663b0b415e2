# tests/services/test_roles.py
"""Tests for the role store and base-community lead synchronization."""

import logging

import pytest

from meriter_core.models import UserCommunityRole
from meriter_core.models.role import ROLE_LEAD, ROLE_PARTICIPANT, ROLE_VIEWER
from meriter_core.services.roles import RoleStore


def _role_rows(db_session, user_id):
    return db_session.query(UserCommunityRole).filter(UserCommunityRole.user_id == user_id).all()


def test_set_role_upserts_single_row(db_session, test_user, community) -> None:
    store = RoleStore(db_session)

    store.set_role(test_user.id, community.id, ROLE_PARTICIPANT)
    store.set_role(test_user.id, community.id, ROLE_PARTICIPANT)
    store.set_role(test_user.id, community.id, ROLE_LEAD)

    rows = _role_rows(db_session, test_user.id)
    assert len(rows) == 1
    assert rows[0].role == ROLE_LEAD
    assert store.get_role(test_user.id, community.id) == ROLE_LEAD


def test_get_role_missing_returns_none(db_session, test_user, community) -> None:
    assert RoleStore(db_session).get_role(test_user.id, community.id) is None


def test_viewer_is_stored_and_read_as_participant(db_session, test_user, community) -> None:
    store = RoleStore(db_session)
    assert store.set_role(test_user.id, community.id, ROLE_VIEWER) == ROLE_PARTICIPANT
    assert _role_rows(db_session, test_user.id)[0].role == ROLE_PARTICIPANT

    # Legacy rows written before the role was retired.
    legacy = _role_rows(db_session, test_user.id)[0]
    legacy.role = ROLE_VIEWER
    db_session.flush()
    assert store.get_role(test_user.id, community.id) == ROLE_PARTICIPANT
    assert store.has_role(test_user.id, community.id, ROLE_PARTICIPANT)


def test_set_role_rejects_unknown_role(db_session, test_user, community) -> None:
    with pytest.raises(ValueError):
        RoleStore(db_session).set_role(test_user.id, community.id, "owner")


def test_remove_role(db_session, test_user, community) -> None:
    store = RoleStore(db_session)
    store.set_role(test_user.id, community.id, ROLE_PARTICIPANT)

    assert store.remove_role(test_user.id, community.id) is True
    assert store.get_role(test_user.id, community.id) is None
    assert store.remove_role(test_user.id, community.id) is False


def test_role_queries(db_session, make_user, make_community) -> None:
    store = RoleStore(db_session)
    alice = make_user("Alice")
    bob = make_user("Bob")
    first = make_community(name="First")
    second = make_community(name="Second")

    store.set_role(alice.id, first.id, ROLE_LEAD)
    store.set_role(alice.id, second.id, ROLE_PARTICIPANT)
    store.set_role(bob.id, first.id, ROLE_PARTICIPANT)

    assert [row.community_id for row in store.get_user_roles(alice.id)] == [first.id, second.id]
    assert store.get_communities_by_role(alice.id, ROLE_LEAD) == [first.id]
    assert store.get_users_by_role(first.id, ROLE_PARTICIPANT) == [bob.id]
    assert store.get_all_users_by_role(ROLE_PARTICIPANT) == sorted([alice.id, bob.id])
    assert store.get_roles_for_communities(alice.id, [first.id, second.id]) == {
        first.id: ROLE_LEAD,
        second.id: ROLE_PARTICIPANT,
    }
    assert store.get_roles_for_communities(alice.id, []) == {}


def test_lead_in_marathon_propagates_to_future_vision(
    db_session, test_user, marathon, future_vision
) -> None:
    store = RoleStore(db_session)
    store.set_role(test_user.id, marathon.id, ROLE_LEAD)

    assert store.get_role(test_user.id, future_vision.id) == ROLE_LEAD


def test_lead_in_future_vision_propagates_to_marathon(
    db_session, test_user, marathon, future_vision
) -> None:
    store = RoleStore(db_session)
    store.set_role(test_user.id, future_vision.id, ROLE_LEAD)

    assert store.get_role(test_user.id, marathon.id) == ROLE_LEAD


def test_lead_downgrade_propagates(db_session, test_user, marathon, future_vision) -> None:
    store = RoleStore(db_session)
    store.set_role(test_user.id, marathon.id, ROLE_LEAD)
    store.set_role(test_user.id, marathon.id, ROLE_PARTICIPANT)

    assert store.get_role(test_user.id, future_vision.id) == ROLE_PARTICIPANT


def test_participant_assignment_does_not_propagate(
    db_session, test_user, marathon, future_vision
) -> None:
    store = RoleStore(db_session)
    store.set_role(test_user.id, marathon.id, ROLE_PARTICIPANT)
    store.set_role(test_user.id, marathon.id, ROLE_PARTICIPANT)

    assert store.get_role(test_user.id, future_vision.id) is None


def test_skip_sync_suppresses_propagation(db_session, test_user, marathon, future_vision) -> None:
    store = RoleStore(db_session)
    store.set_role(test_user.id, marathon.id, ROLE_LEAD, skip_sync=True)

    assert store.get_role(test_user.id, future_vision.id) is None


def test_sync_without_partner_is_noop(db_session, test_user, marathon) -> None:
    store = RoleStore(db_session)
    assert store.set_role(test_user.id, marathon.id, ROLE_LEAD) == ROLE_LEAD
    assert len(_role_rows(db_session, test_user.id)) == 1


def test_sync_ignores_other_community_types(db_session, test_user, team, future_vision) -> None:
    store = RoleStore(db_session)
    store.set_role(test_user.id, team.id, ROLE_LEAD)

    assert store.get_role(test_user.id, future_vision.id) is None


def test_sync_failure_is_logged_and_primary_write_kept(
    db_session, test_user, marathon, future_vision, fail_inserts, caplog
) -> None:
    fail_inserts(UserCommunityRole, lambda row: row.community_id == future_vision.id)
    store = RoleStore(db_session)

    with caplog.at_level(logging.ERROR, logger="meriter_core.services.roles"):
        assert store.set_role(test_user.id, marathon.id, ROLE_LEAD) == ROLE_LEAD
    db_session.commit()

    assert store.get_role(test_user.id, marathon.id) == ROLE_LEAD
    assert store.get_role(test_user.id, future_vision.id) is None
    assert "Failed to synchronize role" in caplog.text
