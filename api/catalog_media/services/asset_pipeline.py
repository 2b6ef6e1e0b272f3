"""Image asset pipeline.

Coordinates the compressor, the blob store, and the metadata store for one
asset class. The two stores share no transaction, so each operation runs a
fixed sequence of steps with its own compensation:

- upload: compress, probe, put blob, insert row. A failed insert deletes
  the new blob.
- replace: put new blob, update row, delete old blob. A failed update
  deletes the new blob and leaves the old asset untouched.
- delete: delete row, then blob. A row pointing at missing bytes is a
  visible broken image; a blob without a row is invisible.

Failures that only orphan a blob are logged and swallowed. Failures that
leave the metadata store different from what the caller expects are raised.

Collection invariants (one featured asset per owner, a total display order)
are maintained by reading the owner's rows and writing them one by one. The
writes are not atomic, so :meth:`AssetPipeline.list_by_owner` returns a
reconciled view that tolerates duplicate sort orders and zero or several
featured rows.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from catalog_media.services.asset_kinds import AssetKind
from catalog_media.services.asset_store import AssetMetadataStore
from catalog_media.services.errors import (
    AssetNotFoundError,
    InvalidReorderError,
    MediaPipelineError,
    MetadataError,
    UnsupportedMediaTypeError,
)
from catalog_media.services.image_compressor import compress
from catalog_media.services.image_metadata import MIME_EXTENSIONS, extract_image_metadata, probe_dimensions
from catalog_media.services.viewport import CropSelection, ImageSize, NormalizedViewport, to_normalized_viewport
from catalog_media.storage.base import BaseStorageDriver, StorageError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}
GENERIC_MIME_TYPES = {None, "", "application/octet-stream"}

_UNSET: Any = object()


@dataclass
class IncomingImage:
    """Raw upload as received from the client."""

    content: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None


@dataclass
class UploadOptions:
    """Caller options for :meth:`AssetPipeline.upload`."""

    compress: bool = True
    alt_text: Optional[str] = None
    sort_order: Optional[int] = None
    is_featured: bool = False
    crop: Optional[CropSelection] = None


@dataclass
class PreparedImage:
    """Bytes ready for storage and what is known about them."""

    content: bytes
    width: int
    height: int
    mime_type: str
    extension: str
    original_size: ImageSize

    @property
    def file_size(self) -> int:
        return len(self.content)


class AssetPipeline:
    """Upload, replace, reorder, feature, and delete assets of one class.

    Args:
        db: Database session
        kind: Asset class (product images or user avatars)
        storage: Blob store driver bound to the class bucket
        clock: Millisecond clock used for storage paths
        suffix_source: Random suffix generator used for storage paths

    Example:
        >>> pipeline = AssetPipeline(db, product_images_kind(), driver)
        >>> image = await pipeline.upload(12, IncomingImage(content, "ring.jpg", "image/jpeg"))
        >>> image.is_featured
        True
    """

    def __init__(
        self,
        db: Session,
        kind: AssetKind,
        storage: BaseStorageDriver,
        clock: Optional[Callable[[], int]] = None,
        suffix_source: Optional[Callable[[], str]] = None,
    ):
        self.kind = kind
        self.storage = storage
        self.store = AssetMetadataStore(db, kind.model)
        self.clock = clock
        self.suffix_source = suffix_source

    # Reads

    def get(self, asset_id: int):
        """Return one asset.

        Raises:
            AssetNotFoundError: If the asset does not exist
        """
        return self.store.get(asset_id)

    def find_by_owner(self, owner_id: int):
        """Return the owner's first asset in display order, or None."""
        return self.store.find_by_owner(owner_id)

    def list_by_owner(self, owner_id: int) -> List:
        """Return the owner's assets as a consistent, ordered view.

        Rows are ordered by sort order with id as tie-break. Exactly one item
        is marked featured when the owner has any assets: the first featured
        row in display order, or the first row if none is featured. Nothing
        is written back.
        """
        assets = self.store.list_by_owner(owner_id)
        views = [self.kind.response_model.model_validate(asset) for asset in assets]
        if not views:
            return views

        featured = [view for view in views if view.is_featured]
        if len(featured) != 1:
            logger.warning(
                f"{self.kind.name} owner {owner_id} has {len(featured)} featured rows, "
                f"reconciling view"
            )
            keep = featured[0] if featured else views[0]
            for view in views:
                view.is_featured = view is keep
        return views

    # Writes

    async def upload(self, owner_id: int, image: IncomingImage, options: Optional[UploadOptions] = None):
        """Store a new image for an owner.

        Single-per-owner classes (avatars) replace the existing asset instead
        of adding a second one.

        Args:
            owner_id: Product or user ID
            image: Uploaded bytes with their declared name and type
            options: Compression, alt text, position, featured flag, avatar crop

        Returns:
            The stored asset

        Raises:
            DecodeError: If the upload is not a readable, accepted image
            CompressionError: If the image cannot be re-encoded
            StorageError: If the blob cannot be stored
            MetadataError: If the row cannot be written. When only clearing
                the previous featured flag fails, the upload itself has
                succeeded: the asset and its blob are stored and the reconciled
                list view shows a single featured asset.
        """
        options = options or UploadOptions()

        if self.kind.single_per_owner:
            existing = self.store.find_by_owner(owner_id)
            if existing is not None:
                logger.info(f"{self.kind.name} owner {owner_id} already has asset {existing.id}, replacing")
                return await self._replace_asset(
                    existing, image, options.compress, options.crop, operation="upload"
                )

        prepared = self._prepare(image, options.compress, operation="upload", owner_id=owner_id)
        viewport = self._viewport(prepared, options.crop)

        # Read before the put so a failed read cannot orphan the new blob
        positions = {asset.id: asset.sort_order for asset in self.store.list_by_owner(owner_id)}
        is_first = not positions

        path = self._generate_path(owner_id, prepared.extension)
        url = await self._put(path, prepared, operation="upload", owner_id=owner_id)

        is_featured = options.is_featured or is_first or self.kind.single_per_owner

        values: Dict[str, Any] = {
            "owner_id": owner_id,
            "storage_path": path,
            "url": url,
            "alt_text": options.alt_text,
            "sort_order": 0 if self.kind.single_per_owner else options.sort_order,
            "is_featured": is_featured,
            "file_size": prepared.file_size,
            "width": prepared.width,
            "height": prepared.height,
            "mime_type": prepared.mime_type,
        }
        if self.kind.supports_viewport:
            values.update(self._viewport_columns(viewport))

        try:
            if options.sort_order is not None and not self.kind.single_per_owner:
                self._make_room(owner_id, positions, options.sort_order)
            asset = self.store.insert(values)
        except MetadataError:
            await self._discard_blob(path, reason=f"failed insert for owner {owner_id}")
            raise

        if is_featured and not is_first:
            self._clear_other_featured(owner_id, keep_id=asset.id)

        logger.info(
            f"Uploaded {self.kind.name} {asset.id} for owner {owner_id} at {path} "
            f"({prepared.width}x{prepared.height}, {prepared.file_size} bytes)"
        )
        return asset

    async def replace(
        self,
        asset_id: int,
        image: IncomingImage,
        compress_image: bool = True,
        crop: Optional[CropSelection] = None,
    ):
        """Swap the bytes of an asset, keeping its row, position, and flags.

        If storing the new bytes fails the original asset is untouched.

        Raises:
            AssetNotFoundError: If the asset does not exist
            DecodeError: If the upload is not a readable, accepted image
            StorageError: If the new blob cannot be stored
            MetadataError: If the row cannot be updated
        """
        asset = self.store.get(asset_id)
        return await self._replace_asset(asset, image, compress_image, crop, operation="replace")

    async def delete(self, asset_id: int) -> None:
        """Delete an asset. Deleting a missing asset is a no-op.

        The row goes first, then the blob. When the featured asset is
        deleted, the remaining asset with the lowest sort order is promoted.

        Raises:
            MetadataError: If the row cannot be deleted
        """
        asset = self.store.find(asset_id)
        if asset is None:
            logger.info(f"{self.kind.name} {asset_id} already deleted")
            return

        owner_id = asset.owner_id
        path = asset.storage_path
        was_featured = asset.is_featured

        self.store.delete(asset_id)
        await self._discard_blob(path, reason=f"delete of {self.kind.name} {asset_id}")

        if was_featured and not self.kind.single_per_owner:
            remaining = self.store.list_by_owner(owner_id)
            if remaining and not any(a.is_featured for a in remaining):
                promoted = remaining[0]
                self.store.update(promoted.id, {"is_featured": True})
                logger.info(f"Promoted {self.kind.name} {promoted.id} to featured for owner {owner_id}")

        logger.info(f"Deleted {self.kind.name} {asset_id} of owner {owner_id}")

    async def delete_all_for_owner(self, owner_id: int) -> int:
        """Delete every asset of an owner, rows first, and return the count.

        Raises:
            MetadataError: If the rows cannot be deleted
        """
        paths = self.store.delete_by_owner(owner_id)
        for path in paths:
            await self._discard_blob(path, reason=f"bulk delete for owner {owner_id}")
        logger.info(f"Deleted {len(paths)} {self.kind.name} assets of owner {owner_id}")
        return len(paths)

    def set_featured(self, asset_id: int):
        """Make an asset the owner's single featured asset.

        The target is flagged first, then every other featured row is
        cleared. A failure part-way leaves two featured rows, which the
        reconciled list view tolerates.

        Raises:
            AssetNotFoundError: If the asset does not exist
            MetadataError: If a row cannot be updated
        """
        asset = self.store.get(asset_id)
        owner_id = asset.owner_id

        if not asset.is_featured:
            asset = self.store.update(asset_id, {"is_featured": True})
        self._clear_other_featured(owner_id, keep_id=asset_id)

        logger.info(f"{self.kind.name} {asset_id} is now featured for owner {owner_id}")
        return asset

    def reorder(self, owner_id: int, ordered_ids: List[int]) -> List:
        """Set the display order of an owner's assets.

        ``ordered_ids`` must be a permutation of the owner's current asset
        IDs; otherwise nothing is written. Each asset gets its index as sort
        order through independent updates.

        Returns:
            The reconciled list view after reordering

        Raises:
            InvalidReorderError: If ``ordered_ids`` is not a permutation
            MetadataError: If a row cannot be updated
        """
        assets = self.store.list_by_owner(owner_id)
        by_id = {asset.id: asset for asset in assets}

        duplicates = sorted({i for i in ordered_ids if ordered_ids.count(i) > 1})
        missing = sorted(set(by_id) - set(ordered_ids))
        unknown = sorted(set(ordered_ids) - set(by_id))
        if duplicates or missing or unknown:
            problems = []
            if duplicates:
                problems.append(f"duplicate ids {duplicates}")
            if missing:
                problems.append(f"missing ids {missing}")
            if unknown:
                problems.append(f"ids not owned by {owner_id}: {unknown}")
            raise InvalidReorderError(
                f"Order must list each asset exactly once: {'; '.join(problems)}",
                operation="reorder",
                owner_id=owner_id,
            )

        current = {asset_id: asset.sort_order for asset_id, asset in by_id.items()}
        for index, asset_id in enumerate(ordered_ids):
            if current[asset_id] != index:
                self.store.update(asset_id, {"sort_order": index})

        logger.info(f"Reordered {len(ordered_ids)} {self.kind.name} assets of owner {owner_id}")
        return self.list_by_owner(owner_id)

    def update(self, asset_id: int, alt_text: Any = _UNSET, viewport: Any = _UNSET):
        """Update descriptive metadata of an asset.

        Args:
            asset_id: Asset ID
            alt_text: New alt text, None clears it
            viewport: New NormalizedViewport, None shows the whole image
                (only for classes that store a viewport)

        Raises:
            AssetNotFoundError: If the asset does not exist
            ValueError: If a viewport is given for a class without one
            MetadataError: If the row cannot be updated
        """
        changes: Dict[str, Any] = {}
        if alt_text is not _UNSET:
            changes["alt_text"] = alt_text
        if viewport is not _UNSET:
            if not self.kind.supports_viewport:
                raise ValueError(f"{self.kind.name} assets have no viewport")
            changes.update(self._viewport_columns(viewport))

        if not changes:
            return self.store.get(asset_id)
        return self.store.update(asset_id, changes)

    # Steps

    def _prepare(self, image: IncomingImage, compress_image: bool, operation: str, owner_id: int) -> PreparedImage:
        """Validate, optionally compress, and probe the bytes to store."""
        declared = (image.content_type or "").split(";")[0].strip().lower() or None
        if declared not in GENERIC_MIME_TYPES and declared not in ALLOWED_MIME_TYPES:
            raise UnsupportedMediaTypeError(
                f'Mimetype "{declared}" is not allowed', operation=operation, owner_id=owner_id
            )

        try:
            original = extract_image_metadata(image.content)

            if compress_image:
                compressed = compress(image.content, self.kind.constraints)
                content = compressed.content
                mime_type = compressed.mime_type
            else:
                content = image.content
                mime_type = original["mime_type"]
                if mime_type not in ALLOWED_MIME_TYPES:
                    raise UnsupportedMediaTypeError(f"Image format {original['format']} is not allowed")

            # Dimensions always describe the bytes that are stored
            width, height = probe_dimensions(content)
        except MediaPipelineError as e:
            raise type(e)(e.message, operation=operation, owner_id=owner_id) from e

        return PreparedImage(
            content=content,
            width=width,
            height=height,
            mime_type=mime_type,
            extension=MIME_EXTENSIONS.get(mime_type, "jpg"),
            original_size=ImageSize(original["width"], original["height"]),
        )

    def _viewport(self, prepared: PreparedImage, crop: Optional[CropSelection]) -> Optional[NormalizedViewport]:
        if crop is None:
            return None
        if not self.kind.supports_viewport:
            raise ValueError(f"{self.kind.name} assets have no viewport")
        displayed = crop.displayed or prepared.original_size
        return to_normalized_viewport(prepared.original_size, displayed, crop.rect)

    @staticmethod
    def _viewport_columns(viewport: Optional[NormalizedViewport]) -> Dict[str, Optional[float]]:
        if viewport is None:
            return {"viewport_x": None, "viewport_y": None, "viewport_size": None}
        return {"viewport_x": viewport.cx, "viewport_y": viewport.cy, "viewport_size": viewport.size}

    def _generate_path(self, owner_id: int, extension: str) -> str:
        return self.kind.generate_path(
            owner_id, extension, clock=self.clock, suffix_source=self.suffix_source
        )

    async def _put(self, path: str, prepared: PreparedImage, operation: str, owner_id: int) -> str:
        try:
            return await self.storage.put_object(
                path, prepared.content, content_type=prepared.mime_type, upsert=self.kind.upsert_blobs
            )
        except StorageError as e:
            logger.error(
                f"Blob put failed during {operation} of {self.kind.name} for owner {owner_id} "
                f"at {self.storage.bucket_name}/{path}: {e}"
            )
            raise type(e)(
                f"Failed to store {self.kind.name} during {operation} for owner {owner_id}: {e}",
                path=path,
                bucket=self.storage.bucket_name,
            ) from e

    async def _discard_blob(self, path: str, reason: str) -> None:
        """Best-effort blob delete. Failures only orphan the blob and are logged."""
        try:
            await self.storage.delete_object(path)
        except Exception as e:
            logger.error(
                f"Orphaned blob {self.storage.bucket_name}/{path} after {reason}: {e}",
                exc_info=True,
            )

    def _make_room(self, owner_id: int, positions: Dict[int, int], sort_order: int) -> None:
        """Move the owner's rows at or after ``sort_order`` one position later.

        Rows are written one by one from the end, like :meth:`reorder`.
        """
        if sort_order not in positions.values():
            return
        shifted = sorted(
            ((asset_id, order) for asset_id, order in positions.items() if order >= sort_order),
            key=lambda item: (item[1], item[0]),
            reverse=True,
        )
        for asset_id, order in shifted:
            try:
                self.store.update(asset_id, {"sort_order": order + 1})
            except AssetNotFoundError:
                continue
        logger.debug(f"Shifted {len(shifted)} {self.kind.name} assets of owner {owner_id} to free position {sort_order}")

    def _clear_other_featured(self, owner_id: int, keep_id: int) -> None:
        for other in self.store.list_by_owner(owner_id):
            if other.id != keep_id and other.is_featured:
                self.store.update(other.id, {"is_featured": False})

    async def _replace_asset(
        self,
        asset,
        image: IncomingImage,
        compress_image: bool,
        crop: Optional[CropSelection],
        operation: str,
    ):
        owner_id = asset.owner_id
        asset_id = asset.id
        old_path = asset.storage_path

        prepared = self._prepare(image, compress_image, operation=operation, owner_id=owner_id)
        viewport = self._viewport(prepared, crop)

        new_path = self._generate_path(owner_id, prepared.extension)
        url = await self._put(new_path, prepared, operation=operation, owner_id=owner_id)

        changes: Dict[str, Any] = {
            "storage_path": new_path,
            "url": url,
            "file_size": prepared.file_size,
            "width": prepared.width,
            "height": prepared.height,
            "mime_type": prepared.mime_type,
        }
        if self.kind.supports_viewport:
            changes.update(self._viewport_columns(viewport))

        try:
            updated = self.store.update(asset_id, changes)
        except (MetadataError, AssetNotFoundError):
            if new_path != old_path:
                await self._discard_blob(new_path, reason=f"failed {operation} of {self.kind.name} {asset_id}")
            raise

        if new_path != old_path:
            await self._discard_blob(old_path, reason=f"{operation} of {self.kind.name} {asset_id}")

        logger.info(f"Replaced bytes of {self.kind.name} {asset_id}: {old_path} -> {new_path}")
        return updated
