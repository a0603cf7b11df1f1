import pytest

from notifications.models import Notification
from notifications.services import create_notification


def _notify(user, title="Hello", **extra):
    return create_notification(
        user=user,
        type=extra.pop("type", Notification.BOOKING_CREATED),
        title=title,
        message=f"{title} message",
        **extra,
    )


@pytest.mark.django_db
def test_list_is_scoped_and_filterable_by_read(api_client, student, agent):
    read = _notify(student, "Read one")
    read.read = True
    read.save(update_fields=["read"])
    unread = _notify(student, "Unread one")
    _notify(agent, "Not yours")
    api_client.force_authenticate(user=student)

    everything = api_client.get("/api/notifications/")
    only_unread = api_client.get("/api/notifications/", {"read": "false"})

    assert [item["id"] for item in everything.json()["results"]] == [unread.id, read.id]
    assert [item["id"] for item in only_unread.json()["results"]] == [unread.id]


@pytest.mark.django_db
def test_unread_count_and_mark_read(api_client, student):
    first = _notify(student, "First")
    _notify(student, "Second")
    api_client.force_authenticate(user=student)

    assert api_client.get("/api/notifications/unread-count/").json() == {"unread_count": 2}

    response = api_client.patch(f"/api/notifications/{first.id}/read/")

    assert response.status_code == 200
    assert response.json()["read"] is True
    assert api_client.get("/api/notifications/unread-count/").json() == {"unread_count": 1}


@pytest.mark.django_db
def test_mark_all_read_returns_changed_count(api_client, student, agent):
    _notify(student, "First")
    _notify(student, "Second")
    _notify(agent, "Untouched")
    api_client.force_authenticate(user=student)

    response = api_client.patch("/api/notifications/read-all/")

    assert response.json() == {"count": 2}
    assert Notification.objects.filter(user=agent, read=False).count() == 1
    assert api_client.patch("/api/notifications/read-all/").json() == {"count": 0}


@pytest.mark.django_db
def test_other_users_notifications_are_not_found(api_client, student, agent):
    theirs = _notify(agent, "Private")
    api_client.force_authenticate(user=student)

    read_response = api_client.patch(f"/api/notifications/{theirs.id}/read/")
    delete_response = api_client.delete(f"/api/notifications/{theirs.id}/")

    assert read_response.status_code == 404
    assert delete_response.status_code == 404
    assert Notification.objects.filter(pk=theirs.id).exists()


@pytest.mark.django_db
def test_delete_own_notification(api_client, student):
    mine = _notify(student, "Mine")
    api_client.force_authenticate(user=student)

    response = api_client.delete(f"/api/notifications/{mine.id}/")

    assert response.status_code == 204
    assert not Notification.objects.filter(pk=mine.id).exists()


@pytest.mark.django_db
def test_notifications_require_authentication(api_client):
    assert api_client.get("/api/notifications/").status_code == 401
