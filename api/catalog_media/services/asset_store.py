"""Relational metadata store for image assets.

Every write commits on its own. There is no multi-row transaction, and no
database constraint keeps a single featured row per owner; callers enforce
collection invariants by reading the owner's full set and writing row by row.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog_media.services.errors import AssetNotFoundError, MetadataError

logger = logging.getLogger(__name__)


class AssetMetadataStore:
    """CRUD over one asset table (``ProductImage`` or ``UserAvatar``)."""

    def __init__(self, db: Session, model):
        self.db = db
        self.model = model

    def _fail(self, operation: str, error: Exception, owner_id: Optional[int] = None, path: Optional[str] = None):
        self.db.rollback()
        logger.error(f"Metadata {operation} failed on {self.model.__tablename__}: {error}", exc_info=True)
        return MetadataError(
            f"Failed to {operation} {self.model.__tablename__} row: {error}",
            operation=operation,
            owner_id=owner_id,
            path=path,
        )

    def next_sort_order(self, owner_id: int) -> int:
        """Return ``max(sort_order) + 1`` for the owner, 0 when empty."""
        current_max = (
            self.db.query(func.max(self.model.sort_order))
            .filter(self.model.owner_id == owner_id)
            .scalar()
        )
        return 0 if current_max is None else current_max + 1

    def insert(self, values: Dict[str, Any]):
        """Insert a row and return it with its assigned id.

        ``sort_order`` defaults to one past the owner's current maximum.

        Raises:
            MetadataError: If the insert fails
        """
        owner_id = values["owner_id"]
        path = values.get("storage_path")
        try:
            if values.get("sort_order") is None:
                values = {**values, "sort_order": self.next_sort_order(owner_id)}

            asset = self.model(**values)
            self.db.add(asset)
            self.db.commit()
            self.db.refresh(asset)
        except SQLAlchemyError as e:
            raise self._fail("insert", e, owner_id=owner_id, path=path) from e

        logger.debug(f"Inserted {asset!r}")
        return asset

    def find(self, asset_id: int):
        """Return the asset or None."""
        try:
            return self.db.query(self.model).filter(self.model.id == asset_id).first()
        except SQLAlchemyError as e:
            raise self._fail("read", e) from e

    def get(self, asset_id: int):
        """Return the asset.

        Raises:
            AssetNotFoundError: If no row has this id
        """
        asset = self.find(asset_id)
        if asset is None:
            raise AssetNotFoundError(f"{self.model.__name__} {asset_id} not found", operation="get")
        return asset

    def find_by_owner(self, owner_id: int):
        """Return the first asset of the owner in display order, or None."""
        assets = self.list_by_owner(owner_id)
        return assets[0] if assets else None

    def list_by_owner(self, owner_id: int) -> List:
        """Return every asset of the owner ordered by ``sort_order``.

        Rows sharing a sort order (left behind by a partially failed reorder)
        fall back to id order.
        """
        try:
            return (
                self.db.query(self.model)
                .filter(self.model.owner_id == owner_id)
                .order_by(self.model.sort_order.asc(), self.model.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise self._fail("list", e, owner_id=owner_id) from e

    def update(self, asset_id: int, changes: Dict[str, Any]):
        """Apply ``changes`` to one row and commit.

        Raises:
            AssetNotFoundError: If no row has this id
            MetadataError: If the update fails
        """
        asset = self.get(asset_id)
        try:
            for field, value in changes.items():
                setattr(asset, field, value)
            self.db.commit()
            self.db.refresh(asset)
        except SQLAlchemyError as e:
            raise self._fail("update", e, owner_id=asset.owner_id, path=asset.storage_path) from e
        return asset

    def delete(self, asset_id: int) -> None:
        """Delete one row. Missing rows are ignored.

        Raises:
            MetadataError: If the delete fails
        """
        try:
            deleted = self.db.query(self.model).filter(self.model.id == asset_id).delete(
                synchronize_session="fetch"
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete", e) from e

        if not deleted:
            logger.debug(f"{self.model.__name__} {asset_id} already deleted")

    def delete_by_owner(self, owner_id: int) -> List[str]:
        """Delete every row of the owner and return their storage paths.

        Raises:
            MetadataError: If the delete fails
        """
        try:
            paths = [
                path
                for (path,) in self.db.query(self.model.storage_path)
                .filter(self.model.owner_id == owner_id)
                .all()
            ]
            self.db.query(self.model).filter(self.model.owner_id == owner_id).delete(
                synchronize_session="fetch"
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete", e, owner_id=owner_id) from e
        return paths
