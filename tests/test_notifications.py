import pytest

from pitchlink.core.errors import AuthorizationError, NotFoundError
from pitchlink.modules.notifications import service as notifications
from pitchlink.schemas.enums import NotificationType

from conftest import auth


@pytest.fixture()
def note(db, notifier, make_user):
    recipient = make_user("recipient")
    sender = make_user("sender")
    n = notifications.create_notification(
        db, notifier, recipient.id, sender.id, NotificationType.info, related_id="x", message="hello"
    )
    return recipient, sender, n


def test_unread_count_and_mark_read(db, note):
    recipient, _, n = note
    assert notifications.unread_count(db, recipient.id) == 1

    notifications.mark_read(db, n.id, recipient.id)

    assert notifications.unread_count(db, recipient.id) == 0


def test_only_recipient_can_touch(db, note):
    _, sender, n = note
    with pytest.raises(AuthorizationError):
        notifications.mark_read(db, n.id, sender.id)
    with pytest.raises(NotFoundError):
        notifications.delete(db, "missing", sender.id)


def test_clear_all(db, notifier, note):
    recipient, sender, _ = note
    notifications.create_notification(db, notifier, recipient.id, sender.id, NotificationType.system, related_id="y")

    assert notifications.clear_all(db, recipient.id) == 2
    assert notifications.list_for(db, recipient.id) == []


def test_routes(client, note):
    recipient, _, n = note

    assert client.get("/v1/notifications/unread-count", headers=auth(recipient)).json() == {"count": 1}
    assert client.post(f"/v1/notifications/{n.id}/read", headers=auth(recipient)).json()["is_read"] is True
    assert client.delete(f"/v1/notifications/{n.id}", headers=auth(recipient)).status_code == 200
    assert client.get("/v1/notifications", headers=auth(recipient)).json() == []
