"""Order amendment API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query

from orderdesk.api.dependencies import get_amendment_service
from orderdesk.modules.amendment.schemas import (
    AmendmentApply,
    AmendmentApprove,
    AmendmentCreate,
    AmendmentListResponse,
    AmendmentPreviewResponse,
    AmendmentReject,
    AmendmentResponse,
)
from orderdesk.modules.amendment.service import AmendmentService

router = APIRouter(tags=["amendments"])


# ---------------------------------------------------------------------------
# Per-order amendments
# ---------------------------------------------------------------------------


@router.post(
    "/orders/{order_id}/amendments/preview", response_model=AmendmentPreviewResponse
)
async def preview_amendment(
    order_id: uuid.UUID,
    body: AmendmentCreate,
    svc: AmendmentService = Depends(get_amendment_service),
):
    """Compute an amendment's impact without saving it."""
    return await svc.preview(order_id, body, body.amendment_type)


@router.post(
    "/orders/{order_id}/amendments", response_model=AmendmentResponse, status_code=201
)
async def create_amendment(
    order_id: uuid.UUID,
    body: AmendmentCreate,
    svc: AmendmentService = Depends(get_amendment_service),
):
    amendment = await svc.create_amendment(order_id, body)
    return AmendmentResponse.model_validate(amendment)


@router.get("/orders/{order_id}/amendments", response_model=AmendmentListResponse)
async def list_order_amendments(
    order_id: uuid.UUID,
    svc: AmendmentService = Depends(get_amendment_service),
):
    amendments = await svc.list_for_order(order_id)
    return AmendmentListResponse(
        items=[AmendmentResponse.model_validate(a) for a in amendments],
        total=len(amendments),
    )


# ---------------------------------------------------------------------------
# Approval queue and lifecycle
# ---------------------------------------------------------------------------


@router.get("/amendments/pending", response_model=AmendmentListResponse)
async def list_pending_amendments(
    limit: int = Query(50, ge=1, le=200),
    svc: AmendmentService = Depends(get_amendment_service),
):
    """Amendments waiting for a manager decision, oldest first."""
    amendments = await svc.list_pending(limit)
    return AmendmentListResponse(
        items=[AmendmentResponse.model_validate(a) for a in amendments],
        total=len(amendments),
    )


@router.get("/amendments/{amendment_id}", response_model=AmendmentResponse)
async def get_amendment(
    amendment_id: uuid.UUID,
    svc: AmendmentService = Depends(get_amendment_service),
):
    amendment = await svc.get_amendment(amendment_id)
    return AmendmentResponse.model_validate(amendment)


@router.post("/amendments/{amendment_id}/approve", response_model=AmendmentResponse)
async def approve_amendment(
    amendment_id: uuid.UUID,
    body: AmendmentApprove,
    svc: AmendmentService = Depends(get_amendment_service),
):
    amendment = await svc.approve_amendment(amendment_id, body.approved_by, body.notes)
    return AmendmentResponse.model_validate(amendment)


@router.post("/amendments/{amendment_id}/reject", response_model=AmendmentResponse)
async def reject_amendment(
    amendment_id: uuid.UUID,
    body: AmendmentReject,
    svc: AmendmentService = Depends(get_amendment_service),
):
    amendment = await svc.reject_amendment(amendment_id, body.rejected_by, body.reason)
    return AmendmentResponse.model_validate(amendment)


@router.post("/amendments/{amendment_id}/apply", response_model=AmendmentResponse)
async def apply_amendment(
    amendment_id: uuid.UUID,
    body: AmendmentApply,
    svc: AmendmentService = Depends(get_amendment_service),
):
    amendment = await svc.apply_amendment(amendment_id, body.applied_by)
    return AmendmentResponse.model_validate(amendment)
