import pytest

from core.errors import AlreadyExists, InvalidOperation, NotFound
from Profile import graph
from Profile.models import Follow

pytestmark = pytest.mark.django_db


def test_follow_is_directional(alice, bob):
    graph.create_follow(alice, bob)
    assert graph.is_following(alice.pk, bob.pk)
    assert not graph.is_following(bob.pk, alice.pk)


def test_duplicate_follow_is_rejected(alice, bob):
    graph.create_follow(alice, bob)
    with pytest.raises(AlreadyExists):
        graph.create_follow(alice, bob)
    assert Follow.objects.filter(follower=alice, following=bob).count() == 1


def test_cannot_follow_self(alice):
    with pytest.raises(InvalidOperation):
        graph.create_follow(alice, alice)


def test_unfollow_without_edge(alice, bob):
    with pytest.raises(NotFound):
        graph.delete_follow(alice, bob)


def test_follow_counts_follow_writes(alice, bob, carol):
    assert graph.follow_counts(bob.pk) == {"followers": 0, "following": 0}
    graph.create_follow(alice, bob)
    graph.create_follow(carol, bob)
    assert graph.followers_count(bob.pk) == 2
    graph.delete_follow(alice, bob)
    assert graph.followers_count(bob.pk) == 1
    assert graph.following_count(carol.pk) == 1


def test_block_toggle(alice, bob):
    assert graph.toggle_block(alice, bob) is True
    assert graph.is_blocked(alice.pk, bob.pk)
    assert not graph.is_blocked(bob.pk, alice.pk)
    assert graph.is_blocked_either_way(bob.pk, alice.pk)
    assert graph.toggle_block(alice, bob) is False
    assert not graph.is_blocked_either_way(alice.pk, bob.pk)


def test_blocked_union_covers_both_directions(alice, bob, carol, block):
    block(alice, bob)
    block(carol, alice)
    assert graph.blocked_union(alice.pk) == {bob.pk, carol.pk}
    assert graph.blocked_ids_of(alice.pk) == {bob.pk}


def test_following_ids_among(alice, bob, carol, follow):
    follow(alice, bob)
    follow(alice, carol)
    assert graph.following_ids_of(alice.pk) == {bob.pk, carol.pk}
    assert graph.following_ids_of(alice.pk, among=[carol.pk]) == {carol.pk}


def test_follow_endpoint_denied_when_blocked(alice, bob, block, client_for):
    block(bob, alice)
    response = client_for(alice).post(f"/api/follow/{bob.username}/")
    assert response.status_code == 403
    assert response.json() == {"status": "fail", "message": "You cannot follow this user"}


def test_follow_endpoint_notifies(alice, bob, client_for):
    response = client_for(alice).post(f"/api/follow/{bob.username}/")
    assert response.status_code == 200
    assert response.json()["message"] == "Successfully followed bob"
    assert bob.notifications.filter(type="follow", sender=alice).count() == 1


def test_profile_details_hidden_when_blocked(alice, bob, block, client_for):
    block(alice, bob)
    response = client_for(bob).get(f"/api/users/{alice.username}/")
    assert response.status_code == 404


def test_profile_details_counts(alice, bob, follow, client_for):
    follow(bob, alice)
    body = client_for(bob).get(f"/api/users/{alice.username}/").json()
    assert body["status"] == "success"
    assert body["data"]["followersCount"] == 1
    assert body["data"]["isFollowing"] is True
    assert body["data"]["fullName"] == "Alice A"


def test_user_search_skips_blockers(alice, bob, make_user, block, client_for):
    make_user("bobby")
    block(bob, alice)
    body = client_for(alice).get("/api/users/search/", {"query": "bob"}).json()
    assert [row["username"] for row in body["data"]] == ["bobby"]
