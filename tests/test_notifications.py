import pytest

from notification.models import Notification, NotificationType
from notification.services import create_notification, unread_count

pytestmark = pytest.mark.django_db


def test_self_notifications_are_skipped(alice):
    assert create_notification(alice, NotificationType.LIKE, "you liked yourself", sender=alice) is None
    assert not Notification.objects.exists()


def test_unread_count_and_mark_all(alice, bob, client_for):
    for _ in range(3):
        create_notification(alice, NotificationType.FOLLOW, "bob started following you", sender=bob)
    assert unread_count(alice) == 3

    client = client_for(alice)
    assert client.get("/api/notifications/unread-count/").json()["data"] == {"unreadCount": 3}
    body = client.patch("/api/notifications/read-all/").json()
    assert body["data"] == {"updated": 3}
    assert unread_count(alice) == 0


def test_list_is_newest_first_and_scoped(alice, bob, client_for):
    first = create_notification(alice, NotificationType.FOLLOW, "first", sender=bob)
    second = create_notification(alice, NotificationType.MENTION, "second", sender=bob)
    create_notification(bob, NotificationType.FOLLOW, "not yours", sender=alice)

    body = client_for(alice).get("/api/notifications/").json()
    assert [row["id"] for row in body["data"]] == [second.pk, first.pk]
    assert body["data"][0]["sender"]["username"] == "bob"
    assert body["pagination"]["limit"] == 20


def test_mark_one_and_delete(alice, bob, client_for):
    notification = create_notification(alice, NotificationType.FOLLOW, "hi", sender=bob)
    client = client_for(alice)

    assert client.patch(f"/api/notifications/{notification.pk}/read/").json()["data"]["read"] is True
    assert client_for(bob).delete(f"/api/notifications/{notification.pk}/").status_code == 404
    assert client.delete(f"/api/notifications/{notification.pk}/").status_code == 200
    assert not Notification.objects.exists()


def test_clear_all(alice, bob, client_for):
    create_notification(alice, NotificationType.FOLLOW, "one", sender=bob)
    create_notification(alice, NotificationType.FOLLOW, "two", sender=bob)
    body = client_for(alice).delete("/api/notifications/").json()
    assert body == {"status": "success", "message": "All notifications deleted"}
    assert not alice.notifications.exists()
