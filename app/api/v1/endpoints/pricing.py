"""
Rate cards.

Customer pricing is a single shared rate card. Corporate pricing is one rate
card per client; it moves pending -> approved | rejected, either by an admin or
by the client through an emailed approval link.
"""
from datetime import datetime, timezone
from typing import Optional
import logging
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy import select

from app.api.deps import DB, CurrentUser, require_permission
from app.config import settings
from app.core.errors import ConflictError, NotFoundError
from app.core.security import generate_approval_token
from app.models.pricing import CorporatePricing, CorporatePricingStatus, CustomerPricing
from app.models.user import Permission
from app.schemas.pricing import (
    CorporatePricingCreate,
    CorporatePricingEnvelope,
    CorporatePricingListResponse,
    CorporatePricingResponse,
    CorporatePricingUpdate,
    CustomerPricingEnvelope,
    CustomerPricingResponse,
    CustomerPricingUpdate,
    PublicApprovalView,
    PublicRejectRequest,
    RejectRequest,
    SendApprovalEmailRequest,
)
from app.services.email_service import get_email_service

logger = logging.getLogger(__name__)

require_pricing_management = require_permission(Permission.PRICING_MANAGEMENT.value)

customer_router = APIRouter(tags=["Admin - Pricing"])
corporate_router = APIRouter(
    tags=["Admin - Pricing"],
    dependencies=[Depends(require_pricing_management)],
)
public_router = APIRouter(tags=["Pricing Approval"])

DEFAULT_SLUG = "default"


# ==================== CUSTOMER PRICING ====================

async def _customer_pricing(db) -> Optional[CustomerPricing]:
    result = await db.execute(select(CustomerPricing).where(CustomerPricing.slug == DEFAULT_SLUG))
    return result.scalar_one_or_none()


def _customer_envelope(pricing: Optional[CustomerPricing]) -> CustomerPricingEnvelope:
    if pricing is None:
        return CustomerPricingEnvelope(data=CustomerPricingResponse())
    return CustomerPricingEnvelope(data=CustomerPricingResponse.model_validate(pricing))


@customer_router.get("/public", response_model=CustomerPricingEnvelope)
async def get_public_customer_pricing(db: DB):
    """Rate card shown on the public site. No login needed."""
    return _customer_envelope(await _customer_pricing(db))


@customer_router.get(
    "",
    response_model=CustomerPricingEnvelope,
    dependencies=[Depends(require_pricing_management)]
)
async def get_customer_pricing(db: DB):
    return _customer_envelope(await _customer_pricing(db))


@customer_router.put(
    "",
    response_model=CustomerPricingEnvelope,
    dependencies=[Depends(require_pricing_management)]
)
async def upsert_customer_pricing(data: CustomerPricingUpdate, current_user: CurrentUser, db: DB):
    """Create or replace the customer rate card."""
    pricing = await _customer_pricing(db)
    if pricing is None:
        pricing = CustomerPricing(slug=DEFAULT_SLUG)
        db.add(pricing)

    pricing.standard_dox = data.standard_dox
    pricing.standard_non_dox = data.standard_non_dox
    pricing.priority_pricing = data.priority_pricing
    pricing.reverse_pricing = data.reverse_pricing
    pricing.notes = data.notes
    pricing.last_updated_by = current_user.id

    await db.commit()
    await db.refresh(pricing)
    logger.info(f"Customer pricing updated by {current_user.email}")
    return _customer_envelope(pricing)


# ==================== CORPORATE PRICING ====================

async def _get_corporate(db, pricing_id: uuid.UUID) -> CorporatePricing:
    pricing = await db.get(CorporatePricing, pricing_id)
    if not pricing:
        raise NotFoundError("Corporate pricing not found")
    return pricing


def _ensure_pending(pricing: CorporatePricing) -> None:
    if pricing.status != CorporatePricingStatus.PENDING.value:
        raise ConflictError(f"Pricing is already {pricing.status}")


def _envelope(pricing: CorporatePricing, message: Optional[str] = None) -> CorporatePricingEnvelope:
    return CorporatePricingEnvelope(message=message, data=CorporatePricingResponse.model_validate(pricing))


@corporate_router.post("", response_model=CorporatePricingEnvelope, status_code=status.HTTP_201_CREATED)
async def create_corporate_pricing(data: CorporatePricingCreate, db: DB):
    pricing = CorporatePricing(
        **data.model_dump(),
        status=CorporatePricingStatus.PENDING.value,
    )
    db.add(pricing)
    await db.commit()
    await db.refresh(pricing)
    logger.info(f"Corporate pricing created: {pricing.name}")
    return _envelope(pricing, "Corporate pricing created")


@corporate_router.get("", response_model=CorporatePricingListResponse)
async def list_corporate_pricing(
    db: DB,
    status_filter: Optional[CorporatePricingStatus] = Query(None, alias="status"),
):
    query = select(CorporatePricing)
    if status_filter:
        query = query.where(CorporatePricing.status == status_filter.value)
    result = await db.execute(query.order_by(CorporatePricing.created_at.desc()))
    items = result.scalars().all()
    return CorporatePricingListResponse(
        data=[CorporatePricingResponse.model_validate(p) for p in items],
        total=len(items),
    )


@corporate_router.get("/{pricing_id}", response_model=CorporatePricingEnvelope)
async def get_corporate_pricing(pricing_id: uuid.UUID, db: DB):
    return _envelope(await _get_corporate(db, pricing_id))


@corporate_router.put("/{pricing_id}", response_model=CorporatePricingEnvelope)
async def update_corporate_pricing(pricing_id: uuid.UUID, data: CorporatePricingUpdate, db: DB):
    pricing = await _get_corporate(db, pricing_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(pricing, field, value)
    await db.commit()
    await db.refresh(pricing)
    return _envelope(pricing, "Corporate pricing updated")


@corporate_router.delete("/{pricing_id}")
async def delete_corporate_pricing(pricing_id: uuid.UUID, db: DB):
    pricing = await _get_corporate(db, pricing_id)
    await db.delete(pricing)
    await db.commit()
    return {"success": True, "message": "Corporate pricing deleted successfully"}


@corporate_router.patch("/{pricing_id}/approve", response_model=CorporatePricingEnvelope)
async def approve_corporate_pricing(pricing_id: uuid.UUID, current_user: CurrentUser, db: DB):
    pricing = await _get_corporate(db, pricing_id)
    _ensure_pending(pricing)

    pricing.status = CorporatePricingStatus.APPROVED.value
    pricing.approved_by = current_user.id
    pricing.approved_at = datetime.now(timezone.utc)
    pricing.rejection_reason = None

    await db.commit()
    await db.refresh(pricing)
    logger.info(f"Corporate pricing {pricing.name} approved by {current_user.email}")
    return _envelope(pricing, "Pricing approved")


@corporate_router.patch("/{pricing_id}/reject", response_model=CorporatePricingEnvelope)
async def reject_corporate_pricing(pricing_id: uuid.UUID, data: RejectRequest, db: DB):
    pricing = await _get_corporate(db, pricing_id)
    _ensure_pending(pricing)

    pricing.status = CorporatePricingStatus.REJECTED.value
    pricing.rejection_reason = data.reason

    await db.commit()
    await db.refresh(pricing)
    logger.info(f"Corporate pricing {pricing.name} rejected")
    return _envelope(pricing, "Pricing rejected")


@corporate_router.post("/{pricing_id}/send-approval-email", response_model=CorporatePricingEnvelope)
async def send_approval_email(
    pricing_id: uuid.UUID,
    data: SendApprovalEmailRequest,
    background_tasks: BackgroundTasks,
    db: DB,
):
    """
    Email the client a link to review the rate card. A fresh token is issued
    each time; older links stop working.
    """
    pricing = await _get_corporate(db, pricing_id)
    _ensure_pending(pricing)

    pricing.approval_token = generate_approval_token()
    pricing.client_email = data.email
    pricing.email_sent_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(pricing)

    approval_url = f"{settings.FRONTEND_URL.rstrip('/')}/pricing-approval/{pricing.approval_token}"
    background_tasks.add_task(
        get_email_service().send_pricing_approval_email,
        data.email,
        pricing.client_name or "",
        pricing.name,
        approval_url,
    )
    logger.info(f"Approval link for pricing {pricing.name} queued to {data.email}")
    return _envelope(pricing, "Approval email sent")


# ==================== PUBLIC APPROVAL LINK ====================

async def _by_token(db, token: str) -> CorporatePricing:
    result = await db.execute(select(CorporatePricing).where(CorporatePricing.approval_token == token))
    pricing = result.scalar_one_or_none()
    if not pricing:
        raise NotFoundError("Invalid or expired approval link")
    return pricing


@public_router.get("/pricing-approval/{token}", response_model=PublicApprovalView)
async def view_pricing_for_approval(token: str, db: DB):
    return PublicApprovalView.model_validate(await _by_token(db, token))


@public_router.post("/pricing-approval/{token}/approve", response_model=PublicApprovalView)
async def approve_by_link(token: str, db: DB):
    pricing = await _by_token(db, token)
    _ensure_pending(pricing)

    pricing.status = CorporatePricingStatus.APPROVED.value
    pricing.approved_at = datetime.now(timezone.utc)
    pricing.email_approved_by = pricing.client_email

    await db.commit()
    await db.refresh(pricing)
    logger.info(f"Corporate pricing {pricing.name} approved by client link")
    return PublicApprovalView.model_validate(pricing)


@public_router.post("/pricing-approval/{token}/reject", response_model=PublicApprovalView)
async def reject_by_link(token: str, db: DB, data: Optional[PublicRejectRequest] = None):
    pricing = await _by_token(db, token)
    _ensure_pending(pricing)

    pricing.status = CorporatePricingStatus.REJECTED.value
    pricing.rejection_reason = (data.reason if data else None) or "Rejected by client"
    pricing.email_approved_by = pricing.client_email

    await db.commit()
    await db.refresh(pricing)
    logger.info(f"Corporate pricing {pricing.name} rejected by client link")
    return PublicApprovalView.model_validate(pricing)
