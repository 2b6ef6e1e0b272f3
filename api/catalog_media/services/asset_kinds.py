"""Asset classes handled by the pipeline.

Product images and user avatars share the pipeline but differ in bucket,
key layout, overwrite policy, and compression preset.

Product image keys are never overwritten: a collision on a freshly generated
key means the clock or random source is broken and must surface. Avatar keys
are written with upsert because avatar replacement has historically retried
into the same generated name under clock contention. The two policies are
kept distinct on purpose.
"""

import secrets
import string
import time
from dataclasses import dataclass
from typing import Callable, Optional, Type

from catalog_media.config import Settings, settings
from catalog_media.models.asset import ProductImage, UserAvatar
from catalog_media.schemas.asset import ProductImageResponse, UserAvatarResponse
from catalog_media.services.image_compressor import CompressionConstraints

BASE36_ALPHABET = string.digits + string.ascii_lowercase
RANDOM_SUFFIX_LENGTH = 6

# (owner_id, timestamp_ms, random_suffix, extension) -> storage path
PathTemplate = Callable[[int, int, str, str], str]


def product_image_path(owner_id: int, timestamp_ms: int, suffix: str, extension: str) -> str:
    return f"{owner_id}/original/{timestamp_ms}-{suffix}.{extension}"


def avatar_path(owner_id: int, timestamp_ms: int, suffix: str, extension: str) -> str:
    return f"{owner_id}/avatar-{timestamp_ms}-{suffix}.{extension}"


def random_suffix(length: int = RANDOM_SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


def current_timestamp_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class AssetKind:
    """Static description of one asset class."""

    name: str
    model: Type
    response_model: Type
    bucket_name: str
    path_template: PathTemplate
    upsert_blobs: bool
    single_per_owner: bool
    constraints: CompressionConstraints
    supports_viewport: bool = False

    def generate_path(
        self,
        owner_id: int,
        extension: str,
        clock: Optional[Callable[[], int]] = None,
        suffix_source: Optional[Callable[[], str]] = None,
    ) -> str:
        """Generate a fresh storage path for a new blob of this class."""
        timestamp_ms = (clock or current_timestamp_ms)()
        suffix = (suffix_source or random_suffix)()
        return self.path_template(owner_id, timestamp_ms, suffix, extension)


def product_images_kind(app_settings: Optional[Settings] = None) -> AssetKind:
    app_settings = app_settings or settings
    return AssetKind(
        name="product_image",
        model=ProductImage,
        response_model=ProductImageResponse,
        bucket_name=app_settings.product_images_bucket,
        path_template=product_image_path,
        upsert_blobs=False,
        single_per_owner=False,
        constraints=CompressionConstraints(
            max_width=app_settings.product_image_max_dimension,
            max_height=app_settings.product_image_max_dimension,
            quality=app_settings.product_image_quality,
        ),
    )


def user_avatars_kind(app_settings: Optional[Settings] = None) -> AssetKind:
    app_settings = app_settings or settings
    return AssetKind(
        name="user_avatar",
        model=UserAvatar,
        response_model=UserAvatarResponse,
        bucket_name=app_settings.user_avatars_bucket,
        path_template=avatar_path,
        upsert_blobs=True,
        single_per_owner=True,
        constraints=CompressionConstraints(
            max_width=app_settings.avatar_max_dimension,
            max_height=app_settings.avatar_max_dimension,
            quality=app_settings.avatar_quality,
            max_size_bytes=app_settings.avatar_max_size_bytes,
        ),
        supports_viewport=True,
    )
