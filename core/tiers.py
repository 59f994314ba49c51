from dataclasses import dataclass

from .errors import ValidationError

MB = 1024 * 1024

BASIC = "basic"
PREMIUM = "premium"


@dataclass(frozen=True)
class TierLimits:
    max_content_length: int
    max_media_count: int
    max_image_bytes: int
    max_video_bytes: int


class TierPolicy:
    """Single lookup for every limit that depends on the account tier."""

    LIMITS = {
        BASIC: TierLimits(max_content_length=200, max_media_count=5, max_image_bytes=1 * MB, max_video_bytes=50 * MB),
        PREMIUM: TierLimits(max_content_length=500, max_media_count=10, max_image_bytes=5 * MB, max_video_bytes=200 * MB),
    }

    @classmethod
    def tier_for(cls, is_premium):
        return PREMIUM if is_premium else BASIC

    @classmethod
    def limits_for(cls, is_premium) -> TierLimits:
        return cls.LIMITS[cls.tier_for(is_premium)]

    @classmethod
    def check_content(cls, content, is_premium):
        limits = cls.limits_for(is_premium)
        if content and len(content) > limits.max_content_length:
            label = "Premium" if is_premium else "Basic"
            raise ValidationError(
                f"Content length exceeds limit. {label} users can post up to {limits.max_content_length} characters."
            )

    @classmethod
    def check_media(cls, files, is_premium):
        """Validate uploaded files (anything with .size and .content_type) against the tier."""
        limits = cls.limits_for(is_premium)
        label = "Premium" if is_premium else "Basic"
        if len(files) > limits.max_media_count:
            raise ValidationError(f"{label} users can attach up to {limits.max_media_count} files.")
        for f in files:
            kind = media_kind(f)
            cap = limits.max_video_bytes if kind == "video" else limits.max_image_bytes
            if f.size > cap:
                raise ValidationError(
                    f"File too large. {label} users: Images up to {limits.max_image_bytes // MB}MB, "
                    f"Videos up to {limits.max_video_bytes // MB}MB"
                )


def media_kind(upload):
    content_type = getattr(upload, "content_type", "") or ""
    return "image" if content_type.startswith("image") else "video"
