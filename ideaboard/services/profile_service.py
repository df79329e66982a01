"""Profile service layer - the caller's own display profile."""
from __future__ import annotations

from ideaboard.context import UserContext
from ideaboard.core.exceptions import ConflictError, ValidationError
from ideaboard.models import db
from ideaboard.models.activity import Profile

EDITABLE_FIELDS = ("username", "full_name", "avatar_url")


def get_or_create_profile(ctx: UserContext) -> Profile:
    """Profiles are created lazily on first access."""
    profile = db.session.get(Profile, ctx.user_id)
    if profile is None:
        profile = Profile(id=ctx.user_id)
        db.session.add(profile)
        db.session.flush()
    return profile


def update_profile(ctx: UserContext, data: dict) -> Profile:
    unknown = set(data) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(
            f"Unknown profile fields: {', '.join(sorted(unknown))}",
            details={f: "not_editable" for f in unknown},
        )
    profile = get_or_create_profile(ctx)

    if "username" in data:
        username = str(data["username"] or "").strip() or None
        if username is not None:
            taken = Profile.query.filter(
                Profile.username == username, Profile.id != profile.id,
            ).first()
            if taken is not None:
                raise ConflictError("Profile", "username", username)
        profile.username = username
    for field in ("full_name", "avatar_url"):
        if field in data:
            setattr(profile, field, str(data[field] or "").strip() or None)

    db.session.flush()
    return profile
