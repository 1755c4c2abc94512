from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from db.repositories import AssetRepository
from domain.asset import Asset, AssetStatus, AssetType
from domain.errors import ERR_ASSET_ACCESS_DENIED, ERR_ASSET_NOT_FOUND, ErrorLayer, NotFound
from domain.ownership import verify_ownership
from domain.progress import OverallProgressCalculator, ProgressInput
from domain.validation import parse, unwrap
from query.filter import SafeQueryFilter
from query.pagination import PaginatedResponse, resolve_page
from query.schema import build_query_spec, create_entity_query_schema

logger = logging.getLogger(__name__)

ASSET_SORTABLE_COLUMNS = ("name", "asset_type", "created_at", "updated_at")
AssetQuery = create_entity_query_schema(
    "AssetQuery", ASSET_SORTABLE_COLUMNS, {"asset_type": AssetType, "location": str}
)


@dataclass(frozen=True)
class AssetProgress:
    asset: Asset
    progress: Decimal | None
    status: AssetStatus


@dataclass(frozen=True)
class DashboardSummary:
    total_value: Decimal
    total_target: Decimal
    overall_progress: Decimal | None
    assets: list[AssetProgress]


class AssetService:
    def __init__(self, assets: AssetRepository, calculator: OverallProgressCalculator | None = None) -> None:
        self._assets = assets
        self._calculator = calculator or OverallProgressCalculator()

    def create(self, user_id: UUID, data: Mapping[str, Any]) -> Asset:
        asset = self._assets.add(Asset.create(data, user_id, user_id))
        logger.info("Created asset %s for user %s", asset.id, user_id)
        return asset

    def get(self, asset_id: UUID, user_id: UUID) -> Asset:
        asset = self._assets.find_by_id(asset_id)
        if asset is None:
            raise NotFound(ERR_ASSET_NOT_FOUND, layer=ErrorLayer.APPLICATION)
        verify_ownership(asset.user_id, user_id, message=ERR_ASSET_ACCESS_DENIED)
        return asset

    def update(self, asset_id: UUID, user_id: UUID, patch: Mapping[str, Any]) -> Asset:
        asset = self.get(asset_id, user_id)
        return self._assets.update(asset_id, asset.update(patch, user_id))

    def delete(self, asset_id: UUID, user_id: UUID) -> Asset:
        asset = self.get(asset_id, user_id)
        deleted = self._assets.update(asset_id, asset.delete(user_id))
        logger.info("Deleted asset %s", asset_id)
        return deleted

    def list(self, user_id: UUID, raw_query: Mapping[str, Any] | None = None) -> PaginatedResponse[Asset]:
        query = unwrap(parse(AssetQuery, raw_query or {}), remarks="Invalid asset query")
        spec = build_query_spec(
            query,
            alias=self._assets.alias,
            search_columns=("name", "location", "description"),
            allowed_columns=ASSET_SORTABLE_COLUMNS,
            user_id=user_id,
        )
        page, limit = resolve_page(query.page, query.limit)
        return self._assets.paginated_list(spec, page=page, limit=limit)

    def dashboard(self, user_id: UUID) -> DashboardSummary:
        spec = SafeQueryFilter.create(alias=self._assets.alias).equal("user_id", user_id).order_by("name").build()
        assets = self._assets.list(spec)
        return DashboardSummary(
            total_value=sum((asset.current_value for asset in assets), start=Decimal(0)),
            total_target=sum((asset.target_value or Decimal(0) for asset in assets), start=Decimal(0)),
            overall_progress=self._calculator.calculate(ProgressInput.from_asset(asset) for asset in assets),
            assets=[AssetProgress(asset=asset, progress=asset.progress, status=asset.status) for asset in assets],
        )


__all__ = ["AssetProgress", "AssetQuery", "AssetService", "DashboardSummary"]
