"""Order version ledger API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query

from orderdesk.api.dependencies import get_version_service
from orderdesk.modules.versioning.schemas import (
    VersionDiffResponse,
    VersionListResponse,
    VersionResponse,
)
from orderdesk.modules.versioning.service import VersionService

router = APIRouter(prefix="/orders/{order_id}/versions", tags=["versions"])


@router.get("", response_model=VersionListResponse)
async def list_versions(
    order_id: uuid.UUID,
    svc: VersionService = Depends(get_version_service),
):
    versions = await svc.list_versions(order_id)
    return VersionListResponse(
        items=[VersionResponse.model_validate(v) for v in versions],
        total=len(versions),
    )


@router.get("/compare", response_model=VersionDiffResponse)
async def compare_versions(
    order_id: uuid.UUID,
    v1: int = Query(..., ge=1),
    v2: int = Query(..., ge=1),
    svc: VersionService = Depends(get_version_service),
):
    return await svc.diff_versions(order_id, v1, v2)


@router.get("/{version_number}", response_model=VersionResponse)
async def get_version(
    order_id: uuid.UUID,
    version_number: int,
    svc: VersionService = Depends(get_version_service),
):
    version = await svc.get_version(order_id, version_number)
    return VersionResponse.model_validate(version)
