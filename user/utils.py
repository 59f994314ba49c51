from hashlib import md5


def user_key(user):
    """Generate a cache key for a user object or a user id."""
    pk = getattr(user, "pk", user)
    raw = f"user_cache:v1:{pk}"
    return md5(raw.encode("utf-8")).hexdigest()


def identity_payload(user):
    """Identity fields handed to the rest of the app for an authenticated user."""
    prof = getattr(user, "profile", None)
    return {
        "id": user.pk,
        "username": user.username,
        "avatar": getattr(prof, "avatar", None),
        "premiumStatus": bool(getattr(prof, "is_premium", False)),
    }
