"""Admin API routes: merchant approval and bed QR code management."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from bedside_ordering.auth.api_dependencies import get_admin_user
from bedside_ordering.auth.identity import AuthenticatedUser
from bedside_ordering.models.location_models import BedQrCode, DeliveryLocation
from bedside_ordering.models.menu_models import Restaurant, RestaurantStatus
from bedside_ordering.services.location_service import MAX_BATCH_SIZE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")


class RestaurantStatusRequest(BaseModel):
    status: RestaurantStatus


class BatchQrCodeRequest(BaseModel):
    """Numbered range of beds, e.g. prefix "A-101-", start 1, count 4."""

    prefix: str = Field(..., min_length=1)
    start_number: int = Field(default=1, ge=0)
    count: int = Field(..., ge=1, le=MAX_BATCH_SIZE)
    suffix: str = ""
    department: str | None = None
    room: str | None = None
    details_template: str = Field(..., min_length=1)


@router.get("/restaurants", response_model=list[Restaurant], tags=["Admin"])
async def list_restaurants(
    request: Request, _admin: AuthenticatedUser = Depends(get_admin_user)
) -> list[Restaurant]:
    """Every restaurant, in any status."""
    restaurants: list[Restaurant] = await request.app.state.restaurant_service.list_restaurants()
    return restaurants


@router.put("/restaurants/{restaurant_id}/status", response_model=Restaurant, tags=["Admin"])
async def set_restaurant_status(
    restaurant_id: str,
    body: RestaurantStatusRequest,
    request: Request,
    admin: AuthenticatedUser = Depends(get_admin_user),
) -> Restaurant:
    """Approve, reject or suspend a merchant's restaurant."""
    logger.info(f"Admin {admin.uid} setting restaurant {restaurant_id} to {body.status.value}")
    restaurant: Restaurant = await request.app.state.restaurant_service.set_restaurant_status(
        restaurant_id, body.status
    )
    return restaurant


@router.get("/qrcodes", response_model=list[BedQrCode], tags=["Bed QR Codes"])
async def list_qr_codes(
    request: Request, _admin: AuthenticatedUser = Depends(get_admin_user)
) -> list[BedQrCode]:
    qr_codes: list[BedQrCode] = await request.app.state.bed_qr_code_service.list_qr_codes()
    return qr_codes


@router.post(
    "/qrcodes",
    response_model=BedQrCode,
    status_code=status.HTTP_201_CREATED,
    tags=["Bed QR Codes"],
)
async def create_qr_code(
    body: DeliveryLocation,
    request: Request,
    _admin: AuthenticatedUser = Depends(get_admin_user),
) -> BedQrCode:
    qr_code: BedQrCode = await request.app.state.bed_qr_code_service.create_qr_code(body)
    return qr_code


@router.put("/qrcodes/{qr_code_id}", response_model=BedQrCode, tags=["Bed QR Codes"])
async def update_qr_code(
    qr_code_id: str,
    body: DeliveryLocation,
    request: Request,
    _admin: AuthenticatedUser = Depends(get_admin_user),
) -> BedQrCode:
    qr_code: BedQrCode = await request.app.state.bed_qr_code_service.update_qr_code(
        qr_code_id, body
    )
    return qr_code


@router.post("/qrcodes/{qr_code_id}/toggle", response_model=BedQrCode, tags=["Bed QR Codes"])
async def toggle_qr_code(
    qr_code_id: str,
    request: Request,
    _admin: AuthenticatedUser = Depends(get_admin_user),
) -> BedQrCode:
    """Activate an inactive record or deactivate an active one."""
    qr_code: BedQrCode = await request.app.state.bed_qr_code_service.toggle_qr_code(qr_code_id)
    return qr_code


@router.post(
    "/qrcodes/batch",
    response_model=list[BedQrCode],
    status_code=status.HTTP_201_CREATED,
    tags=["Bed QR Codes"],
)
async def batch_create_qr_codes(
    body: BatchQrCodeRequest,
    request: Request,
    _admin: AuthenticatedUser = Depends(get_admin_user),
) -> list[BedQrCode]:
    """Create records for a numbered range of beds."""
    try:
        qr_codes: list[BedQrCode] = await request.app.state.bed_qr_code_service.batch_create(
            prefix=body.prefix,
            start_number=body.start_number,
            count=body.count,
            details_template=body.details_template,
            suffix=body.suffix,
            department=body.department,
            room=body.room,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return qr_codes
