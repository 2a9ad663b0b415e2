# tests/services/test_wallets_notifications.py
import logging

import pytest

from meriter_core.core.errors import InsufficientBalanceError
from meriter_core.models import Notification
from meriter_core.models.notification import NOTIFICATION_TYPE_QUOTA
from meriter_core.services.notifications import NotificationService
from meriter_core.services.wallets import WalletService


def test_wallet_credit_and_debit(db_session, test_user, community) -> None:
    wallets = WalletService(db_session)
    assert wallets.balance(test_user.id, community.id) == 0
    assert wallets.get_wallet(test_user.id, community.id) is None

    wallets.credit(test_user.id, community.id, 7)
    wallets.debit(test_user.id, community.id, 5)

    assert wallets.balance(test_user.id, community.id) == 2
    assert wallets.get_or_create(test_user.id, community.id).balance == 2


def test_wallet_rejects_overdraft_and_negative_amounts(db_session, test_user, community) -> None:
    wallets = WalletService(db_session)
    wallets.credit(test_user.id, community.id, 1)

    with pytest.raises(InsufficientBalanceError):
        wallets.debit(test_user.id, community.id, 2)
    with pytest.raises(ValueError):
        wallets.debit(test_user.id, community.id, -1)
    with pytest.raises(ValueError):
        wallets.credit(test_user.id, community.id, -1)
    assert wallets.balance(test_user.id, community.id) == 1


def test_notify_quota_reset(db_session, test_user, community) -> None:
    service = NotificationService(db_session)

    notification = service.notify_quota_reset(test_user.id, community.id, 4, 10)

    assert notification.type == NOTIFICATION_TYPE_QUOTA
    assert notification.source_id == str(community.id)
    assert notification.payload["amountAfter"] == 10
    assert service.get_notifications(test_user.id) == [notification]
    assert service.get_notifications(test_user.id, unread_only=True) == [notification]

    notification.is_read = True
    db_session.flush()
    assert service.get_notifications(test_user.id, unread_only=True) == []


def test_notification_failure_is_swallowed(
    db_session, test_user, community, fail_inserts, caplog
) -> None:
    WalletService(db_session).credit(test_user.id, community.id, 3)
    fail_inserts(Notification)

    with caplog.at_level(logging.ERROR, logger="meriter_core.services.notifications"):
        result = NotificationService(db_session).create_notification(test_user.id, "system")
    db_session.commit()

    assert result is None
    assert "Failed to create system notification" in caplog.text
    assert db_session.query(Notification).count() == 0
    assert WalletService(db_session).balance(test_user.id, community.id) == 3
