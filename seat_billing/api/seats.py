# seat_billing/api/seats.py
from __future__ import annotations
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, status

from seat_billing.core.deps import get_seat_manager
from seat_billing.engine.errors import (
    BillingAPIError,
    ConfigurationError,
    NoOpError,
    NotFoundError,
    SeatManagerError,
    UnknownBillingTypeError,
)
from seat_billing.engine.seat_manager import SeatManager
from seat_billing.schemas.api_models import (
    ErrorDetail,
    ProrationResult,
    SeatChangeRequest,
    SeatChangeResult,
)

router = APIRouter(prefix="/subscriptions", tags=["Seats"])

# error kind -> HTTP status
_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (NoOpError, status.HTTP_400_BAD_REQUEST),
    (UnknownBillingTypeError, status.HTTP_409_CONFLICT),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (BillingAPIError, status.HTTP_502_BAD_GATEWAY),
)


def _http_error(e: SeatManagerError) -> HTTPException:
    code = status.HTTP_400_BAD_REQUEST
    for cls, mapped in _STATUS_BY_ERROR:
        if isinstance(e, cls):
            code = mapped
            break
    detail: Dict[str, Any] = ErrorDetail(
        type=e.kind,
        message=e.message,
        upstreamStatus=getattr(e, "status", None),
    ).model_dump(exclude_none=True)
    return HTTPException(status_code=code, detail=detail)


@router.post("/{subscription_id}/seats/add", response_model=SeatChangeResult)
async def add_seats(
    subscription_id: str,
    body: SeatChangeRequest,
    manager: SeatManager = Depends(get_seat_manager),
):
    try:
        return await manager.add_seats(subscription_id, body.quantity)
    except SeatManagerError as e:
        raise _http_error(e)


@router.post("/{subscription_id}/seats/remove", response_model=SeatChangeResult)
async def remove_seats(
    subscription_id: str,
    body: SeatChangeRequest,
    manager: SeatManager = Depends(get_seat_manager),
):
    try:
        return await manager.remove_seats(subscription_id, body.quantity)
    except SeatManagerError as e:
        raise _http_error(e)


@router.get("/{subscription_id}/proration", response_model=ProrationResult)
async def preview_proration(
    subscription_id: str,
    quantity: int = Query(..., ge=0, description="Total desired seats"),
    manager: SeatManager = Depends(get_seat_manager),
):
    try:
        return await manager.calculate_proration(subscription_id, quantity)
    except SeatManagerError as e:
        raise _http_error(e)
