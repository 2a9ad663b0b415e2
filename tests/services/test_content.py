# tests/services/test_content.py
import pytest

from meriter_core.core.errors import (
    ForbiddenError,
    InsufficientQuotaError,
    NotFoundError,
    NotLoggedInError,
)
from meriter_core.models import PollCast, Publication, QuotaUsage
from meriter_core.models.content import POST_TYPE_POLL
from meriter_core.models.quota import (
    USAGE_FORWARD,
    USAGE_POLL_CREATION,
    USAGE_PUBLICATION_CREATION,
)
from meriter_core.models.role import ROLE_PARTICIPANT
from meriter_core.services.content import ContentService
from meriter_core.services.quota import QuotaService
from meriter_core.services.roles import RoleStore
from meriter_core.services.wallets import WalletService


@pytest.fixture()
def content(db_session):
    return ContentService(db_session)


@pytest.fixture()
def members(db_session, test_user, other_user, community):
    roles = RoleStore(db_session)
    roles.set_role(test_user.id, community.id, ROLE_PARTICIPANT)
    roles.set_role(other_user.id, community.id, ROLE_PARTICIPANT)
    return community


def test_create_publication_charges_quota(db_session, content, test_user, members) -> None:
    publication = content.create_publication(test_user, members.id, "Hello", title="Hi")

    usage = db_session.query(QuotaUsage).one()
    assert usage.usage_type == USAGE_PUBLICATION_CREATION
    assert usage.reference_id == str(publication.id)
    assert QuotaService(db_session).remaining(test_user.id, members) == 9


def test_create_publication_denied_without_membership(db_session, content, test_user, community):
    with pytest.raises(ForbiddenError):
        content.create_publication(test_user, community.id, "Hello")
    with pytest.raises(NotLoggedInError):
        content.create_publication(None, community.id, "Hello")
    with pytest.raises(NotFoundError):
        content.create_publication(test_user, 9999, "Hello")
    assert db_session.query(Publication).count() == 0


def test_create_publication_over_cost_writes_nothing(
    db_session, content, test_user, members
) -> None:
    members.post_cost = 15
    db_session.flush()

    with pytest.raises(InsufficientQuotaError):
        content.create_publication(test_user, members.id, "Too expensive")

    assert db_session.query(Publication).count() == 0
    assert db_session.query(QuotaUsage).count() == 0


def test_create_publication_rejects_poll_type(content, test_user, members) -> None:
    with pytest.raises(ValueError):
        content.create_publication(test_user, members.id, "Hello", post_type=POST_TYPE_POLL)


def test_create_poll(db_session, content, test_user, members) -> None:
    poll = content.create_poll(test_user, members.id, "Pizza or sushi?")

    usage = db_session.query(QuotaUsage).one()
    assert usage.usage_type == USAGE_POLL_CREATION
    assert usage.reference_id == str(poll.id)


def test_cast_vote_moves_quota_and_merits(
    db_session, content, test_user, other_user, members
) -> None:
    publication = content.create_publication(test_user, members.id, "Vote for me")

    vote = content.cast_vote(other_user, publication.id, quota_amount=3)

    assert vote.amount_quota == 3
    snapshot = QuotaService(db_session).get_quota(other_user.id, members)
    assert (snapshot.daily_quota, snapshot.used_today, snapshot.remaining_today) == (10, 3, 7)
    assert publication.vote_count == 3
    assert WalletService(db_session).balance(test_user.id, members.id) == 3


def test_cast_vote_with_wallet(db_session, content, test_user, other_user, members) -> None:
    publication = content.create_publication(test_user, members.id, "Vote for me")
    WalletService(db_session).credit(other_user.id, members.id, 5)

    content.cast_vote(other_user, publication.id, quota_amount=1, wallet_amount=4)

    assert WalletService(db_session).balance(other_user.id, members.id) == 1
    assert WalletService(db_session).balance(test_user.id, members.id) == 5


def test_downvote_does_not_credit(db_session, content, test_user, other_user, members) -> None:
    publication = content.create_publication(test_user, members.id, "Meh")

    content.cast_vote(other_user, publication.id, direction=-1, quota_amount=2)

    assert publication.vote_count == -2
    assert WalletService(db_session).balance(test_user.id, members.id) == 0


def test_cast_vote_on_own_post_denied(content, test_user, members) -> None:
    publication = content.create_publication(test_user, members.id, "Mine")

    with pytest.raises(ForbiddenError) as exc_info:
        content.cast_vote(test_user, publication.id, quota_amount=1)
    assert exc_info.value.message == "voteDisabled.isAuthor"


def test_cast_vote_rejects_bad_direction(content, test_user, other_user, members) -> None:
    publication = content.create_publication(test_user, members.id, "Hello")

    with pytest.raises(ValueError):
        content.cast_vote(other_user, publication.id, direction=2, quota_amount=1)


def test_cast_poll_and_comment(db_session, content, test_user, other_user, members) -> None:
    poll = content.create_poll(test_user, members.id, "Tabs or spaces?")

    cast = content.cast_poll(other_user, poll.id, 1, quota_amount=2)
    assert cast.option_index == 1
    assert poll.cast_count == 1
    assert QuotaService(db_session).used_today(other_user.id, members) == 2

    publication = content.create_publication(test_user, members.id, "Discuss")
    comment = content.add_comment(other_user, publication.id, "Agreed")
    assert comment.community_id == members.id
    assert publication.comment_count == 1

    with pytest.raises(NotFoundError):
        content.cast_poll(other_user, 9999, 0, quota_amount=1)
    with pytest.raises(NotLoggedInError):
        content.add_comment(None, publication.id, "Anonymous")


def test_cast_poll_by_non_member_spends_nothing(
    db_session, content, make_user, test_user, members
) -> None:
    poll = content.create_poll(test_user, members.id, "Tabs or spaces?")
    outsider = make_user("Outsider")

    with pytest.raises(ForbiddenError) as exc_info:
        content.cast_poll(outsider, poll.id, 0, quota_amount=2)

    assert exc_info.value.message == "pollDisabled.notMember"
    assert db_session.query(PollCast).count() == 0
    assert poll.cast_count == 0
    assert QuotaService(db_session).used_today(outsider.id, members) == 0
    with pytest.raises(NotLoggedInError):
        content.cast_poll(None, poll.id, 0, quota_amount=1)


@pytest.fixture()
def team_post(db_session, test_user, team, marathon):
    roles = RoleStore(db_session)
    roles.set_role(test_user.id, team.id, ROLE_PARTICIPANT)
    roles.set_role(test_user.id, marathon.id, ROLE_PARTICIPANT)
    publication = Publication(author_id=test_user.id, community_id=team.id, content="Our project")
    db_session.add(publication)
    db_session.flush()
    return publication


def test_propose_forward_charges_team_quota(
    db_session, content, test_user, team, marathon, team_post
) -> None:
    forwarded = content.propose_forward(test_user, team_post.id, marathon.id)

    assert forwarded.forward_target_community_id == marathon.id
    assert forwarded.forward_proposed_by == test_user.id
    assert forwarded.forward_proposed_at is not None
    usage = db_session.query(QuotaUsage).one()
    assert (usage.usage_type, usage.community_id, usage.reference_id) == (
        USAGE_FORWARD,
        team.id,
        str(team_post.id),
    )
    assert QuotaService(db_session).remaining(test_user.id, team) == 9

    with pytest.raises(ForbiddenError) as exc_info:
        content.propose_forward(test_user, team_post.id, marathon.id)
    assert exc_info.value.message == "forwardDisabled.alreadyProposed"
    assert db_session.query(QuotaUsage).count() == 1


def test_propose_forward_checks_both_communities(
    db_session, content, make_community, test_user, other_user, team_post
) -> None:
    elsewhere = make_community(name="Elsewhere")

    with pytest.raises(ForbiddenError) as exc_info:
        content.propose_forward(test_user, team_post.id, elsewhere.id)
    assert exc_info.value.message == "createDisabled.notMember"

    with pytest.raises(ForbiddenError) as exc_info:
        content.propose_forward(other_user, team_post.id, elsewhere.id)
    assert exc_info.value.message == "forwardDisabled.insufficientPermissions"

    with pytest.raises(NotFoundError):
        content.propose_forward(test_user, 9999, elsewhere.id)
    assert db_session.query(QuotaUsage).count() == 0
    assert team_post.forward_target_community_id is None
