"""mk_order REST API — order creation, preview, detail and line-item updates.

All endpoints require JWT authentication.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.database import get_db_session
from src.mk_common.response import ApiResponse, success_response
from src.mk_common.result import Err, Result
from src.mk_gateway.auth.dependencies import AuthenticatedUser, get_current_user
from src.mk_order.application.quote_service import QuoteOrderService
from src.mk_order.application.schemas import (
    CancelReasonRequest,
    CreateOrderRequest,
    PreviewOrderRequest,
    QuoteOrderRequest,
    SellerStatusUpdateRequest,
    ShipmentReceiptRequest,
    StatusUpdateRequest,
    TrackingRequest,
)
from src.mk_order.application.service import OrderOrchestrator
from src.mk_order.application.status_service import OrderStatusService

router = APIRouter(prefix="/orders", tags=["orders"])

_orchestrator = OrderOrchestrator()
_quotes = QuoteOrderService()
_status = OrderStatusService()

CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def _envelope(request: Request, data: object) -> ApiResponse:
    resp = success_response(data.model_dump(mode="json"))  # type: ignore[attr-defined]
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


def _unwrap(result: Result) -> object:
    if isinstance(result, Err):
        raise result.error
    return result.value


@router.post("", status_code=201)
async def create_order(
    body: CreateOrderRequest, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    result = await _orchestrator.create_order(db, current_user, body)
    return _envelope(request, _unwrap(result))


@router.post("/preview")
async def preview_order(
    body: PreviewOrderRequest, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    result = await _orchestrator.preview_order(db, current_user, body)
    return _envelope(request, _unwrap(result))


@router.post("/quote", status_code=201)
async def create_order_from_quote(
    body: QuoteOrderRequest, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    result = await _quotes.create_from_quote(db, current_user, body)
    return _envelope(request, _unwrap(result))


@router.get("/{order_id}")
async def get_order(
    order_id: str, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    data = await _orchestrator.get_order_detail(db, current_user, order_id)
    return _envelope(request, data)


@router.patch("/line-items/{line_item_id}/status")
async def update_line_item_status(
    line_item_id: str,
    body: StatusUpdateRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _status.transition(db, current_user, line_item_id, body)
    return _envelope(request, data)


@router.patch("/line-items/{line_item_id}/seller-status")
async def update_line_item_seller_status(
    line_item_id: str,
    body: SellerStatusUpdateRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _status.seller_transition(db, current_user, line_item_id, body)
    return _envelope(request, data)


@router.post("/line-items/{line_item_id}/cancel-reason")
async def set_cancel_reason(
    line_item_id: str,
    body: CancelReasonRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _status.set_cancel_reason(db, current_user, line_item_id, body.reason)
    return _envelope(request, data)


@router.post("/line-items/{line_item_id}/tracking")
async def add_tracking(
    line_item_id: str,
    body: TrackingRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _status.add_tracking(db, current_user, line_item_id, body)
    return _envelope(request, data)


@router.post("/shipments/{shipment_id}/receipt")
async def attach_shipment_receipt(
    shipment_id: str,
    body: ShipmentReceiptRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _status.attach_shipment_receipt(db, current_user, shipment_id, body.receipt)
    return _envelope(request, data)
