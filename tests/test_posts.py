from datetime import timedelta

import pytest
from django.utils import timezone

from core.errors import AlreadyExists, InvalidOperation, NotFound, PermissionDenied, ValidationError
from posts import services
from posts.models import Like, Post, Visibility
from posts.visibility import add_interaction_flags

pytestmark = pytest.mark.django_db


def test_create_post_extracts_hashtags_and_mentions(alice, bob):
    post = services.create_post(alice, "Hi @bob, see #Django and #tech")
    assert post.hashtags == ["django", "tech"]
    assert list(post.mentions.all()) == [bob]
    assert bob.notifications.filter(type="mention", post=post).exists()
    assert post.edit_chances_left == 3
    assert post.edit_valid_till > timezone.now()


def test_empty_post_rejected(alice):
    with pytest.raises(ValidationError):
        services.create_post(alice, "   ")


def test_basic_tier_content_limit(alice, make_user):
    with pytest.raises(ValidationError):
        services.create_post(alice, "x" * 201)
    premium = make_user("pro", is_premium=True)
    assert services.create_post(premium, "x" * 400).pk


def test_post_with_media_uploads(alice, blob, image_file):
    post = services.create_post(alice, "pics", files=[image_file(), image_file("b.jpg")])
    assert [item["type"] for item in post.media] == ["image", "image"]
    assert all(item["url"].startswith(f"https://blob.test/posts/{alice.pk}/") for item in post.media)
    assert blob.put.call_count == 2


def test_like_count_matches_distinct_likers(alice, bob, carol, make_user):
    post = services.create_post(alice, "like me")
    for user in (bob, carol, make_user()):
        services.like_post(post, user)
    with pytest.raises(AlreadyExists):
        services.like_post(post, bob)
    post.refresh_from_db()
    assert post.like_count == 3 == Like.objects.filter(post=post).values('liked_by').distinct().count()

    services.unlike_post(post, carol)
    post.refresh_from_db()
    assert post.like_count == 2
    with pytest.raises(NotFound):
        services.unlike_post(post, carol)


def test_like_notifies_owner_but_not_self(alice, bob):
    post = services.create_post(alice, "hello")
    services.like_post(post, alice)
    services.like_post(post, bob)
    assert list(alice.notifications.values_list('sender_id', flat=True)) == [bob.pk]


def test_edit_chances_run_out(alice):
    post = services.create_post(alice, "v0")
    for i in range(1, 4):
        post = services.update_post(post, alice, f"v{i}")
    assert post.content == "v3"
    assert post.is_edited
    assert post.edit_chances_left == 0
    with pytest.raises(InvalidOperation, match="No edit chances left"):
        services.update_post(post, alice, "v4")


def test_edit_window_expires(alice):
    post = services.create_post(alice, "draft")
    Post.objects.filter(pk=post.pk).update(edit_valid_till=timezone.now() - timedelta(seconds=1))
    post.refresh_from_db()
    with pytest.raises(InvalidOperation, match="Edit time window has expired"):
        services.update_post(post, alice, "too late")


def test_only_owner_edits(alice, bob):
    post = services.create_post(alice, "mine")
    with pytest.raises(PermissionDenied):
        services.update_post(post, bob, "hijack")


def test_comment_depth_limit(alice, bob):
    root = services.create_post(alice, "root")
    first = services.create_post(bob, "first", parent_post_id=root.pk)
    second = services.create_post(alice, "second", parent_post_id=first.pk)
    assert (first.depth, second.depth) == (1, 2)
    with pytest.raises(InvalidOperation, match="Maximum comment depth reached"):
        services.create_post(bob, "third", parent_post_id=second.pk)


def test_comments_are_public(alice, bob):
    root = services.create_post(alice, "root")
    comment = services.create_post(bob, "reply", visibility=Visibility.FOLLOWERS, parent_post_id=root.pk)
    assert comment.visibility == Visibility.PUBLIC
    root.refresh_from_db()
    assert root.comment_count == 1
    assert alice.notifications.filter(type="comment").count() == 1


def test_cannot_comment_on_hidden_post(alice, bob):
    root = services.create_post(alice, "friends", visibility=Visibility.FOLLOWERS)
    with pytest.raises(PermissionDenied):
        services.create_post(bob, "reply", parent_post_id=root.pk)


def test_deleting_parent_leaves_replies(alice, bob):
    root = services.create_post(alice, "root")
    reply = services.create_post(bob, "reply", parent_post_id=root.pk)
    services.delete_post(root, alice)

    reply.refresh_from_db()
    assert reply.parent_post_id == root.pk
    assert not Post.objects.filter(pk=root.pk).exists()
    [item] = add_interaction_flags(bob.pk, [reply])
    assert item["parentPost"] is None


def test_deleting_reply_recomputes_parent(alice, bob):
    root = services.create_post(alice, "root")
    reply = services.create_post(bob, "reply", parent_post_id=root.pk)
    services.delete_post(reply, bob)
    root.refresh_from_db()
    assert root.comment_count == 0


def test_delete_removes_media_after_commit(alice, blob, image_file, django_capture_on_commit_callbacks):
    post = services.create_post(alice, "pic", files=[image_file()])
    with django_capture_on_commit_callbacks(execute=True):
        services.delete_post(post, alice)
    blob.delete.assert_called_once_with(f"posts/{alice.pk}/" + post.media[0]["url"].rsplit("/", 1)[-1])


def test_repost_targets_root_original(alice, bob, carol):
    original = services.create_post(alice, "original")
    wrapper = services.repost(original, bob)
    second = services.repost(wrapper, carol)
    assert second.original_post_id == original.pk
    original.refresh_from_db()
    assert original.repost_count == 2

    with pytest.raises(AlreadyExists):
        services.repost(original, bob)

    services.undo_repost(original, bob)
    original.refresh_from_db()
    assert original.repost_count == 1


def test_post_detail_hidden_for_stranger(alice, bob, client_for):
    post = services.create_post(alice, "friends", visibility=Visibility.FOLLOWERS)
    response = client_for(bob).get(f"/api/posts/{post.pk}/")
    assert response.status_code == 403
    assert response.json()["status"] == "fail"


def test_create_endpoint_returns_flagged_post(alice, client_for):
    response = client_for(alice).post("/api/posts/", {"content": "hello #world"}, format="json")
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["hashtags"] == ["world"]
    assert data["ownerid"]["username"] == "alice"
    assert data["edits"]["editChancesLeft"] == 3


def test_like_endpoint(alice, bob, client_for):
    post = services.create_post(alice, "like me")
    body = client_for(bob).post(f"/api/posts/{post.pk}/like/").json()
    assert body["data"] == {
        "stats": {"likeCount": 1, "commentCount": 0, "repostCount": 0},
        "isLikedByCurrentUser": True,
    }
    again = client_for(bob).post(f"/api/posts/{post.pk}/like/")
    assert again.status_code == 400
    assert again.json()["message"] == "You have already liked this post"


def test_user_posts_empty_when_blocked(alice, bob, block, client_for):
    services.create_post(alice, "hi")
    block(alice, bob)
    body = client_for(bob).get(f"/api/posts/user/{alice.pk}/").json()
    assert body["data"] == []


def test_edit_chances_decrement_from_stale_copies(alice):
    post = services.create_post(alice, "v0")
    first = Post.objects.get(pk=post.pk)
    second = Post.objects.get(pk=post.pk)

    services.update_post(first, alice, "from first tab")
    services.update_post(second, alice, "from second tab")

    post.refresh_from_db()
    assert post.edit_chances_left == 1
    assert post.content == "from second tab"


def test_stale_copy_cannot_exceed_edit_limit(alice):
    post = services.create_post(alice, "v0")
    stale = Post.objects.get(pk=post.pk)
    for i in range(3):
        post = services.update_post(post, alice, f"v{i + 1}")
    with pytest.raises(InvalidOperation, match="No edit chances left"):
        services.update_post(stale, alice, "one too many")
    post.refresh_from_db()
    assert post.content == "v3"
    assert post.edit_chances_left == 0
