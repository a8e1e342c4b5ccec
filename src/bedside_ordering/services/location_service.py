"""Delivery location, favorites and bed QR code services."""

import json
import logging
import time
import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from bedside_ordering.exceptions import BedQrCodeNotFound, InvalidQrCode, PersistenceFailure
from bedside_ordering.models.location_models import (
    BedQrCode,
    DeliveryLocation,
    FavoriteItem,
    favorite_key,
)
from bedside_ordering.models.menu_models import MenuItem
from bedside_ordering.repositories.location_repositories import (
    BedQrCodeRepository,
    FavoritesRepository,
)
from bedside_ordering.services.session_storage import SessionStorage

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 100
MISSING_TEMPLATE_VALUE = "无"

# Printed QR codes carry camelCase keys; snake_case is accepted as well.
_QR_KEY_ALIASES = {"bedId": "bed_id"}


def encode_qr_payload(location: DeliveryLocation) -> str:
    """JSON value encoded into a bed QR code image. Empty optional fields are omitted."""
    payload: dict[str, str] = {"bedId": location.bed_id}
    if location.department:
        payload["department"] = location.department
    if location.room:
        payload["room"] = location.room
    payload["details"] = location.details
    return json.dumps(payload, ensure_ascii=False)


def parse_qr_payload(payload: str) -> DeliveryLocation:
    """Turn a scanned QR value into a delivery location.

    Args:
        payload: Raw text read from the QR code

    Returns:
        DeliveryLocation with bed id and details

    Raises:
        InvalidQrCode: If the payload is not JSON or lacks bed id or details
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise InvalidQrCode(f"QR code does not contain valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise InvalidQrCode("QR code data must be a JSON object")

    normalized: dict[str, Any] = {_QR_KEY_ALIASES.get(key, key): value for key, value in data.items()}
    if not normalized.get("bed_id") or not normalized.get("details"):
        raise InvalidQrCode('Invalid QR code data: "bedId" and "details" are required')

    try:
        return DeliveryLocation(
            bed_id=str(normalized["bed_id"]),
            details=str(normalized["details"]),
            department=normalized.get("department") or None,
            room=normalized.get("room") or None,
        )
    except ValidationError as e:
        raise InvalidQrCode(f"Invalid QR code data: {e}") from e


class DeliveryLocationStore:
    """Delivery location remembered for one customer session."""

    def __init__(self, storage: SessionStorage, session_id: str) -> None:
        self.storage = storage
        self.session_id = session_id
        self.storage_key = f"delivery-location:{session_id}"

    def get(self) -> DeliveryLocation | None:
        """The stored location; unusable stored data is discarded."""
        raw = self.storage.get(self.storage_key)
        if raw is None:
            return None

        try:
            return DeliveryLocation.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding invalid delivery location for session {self.session_id}: {e}")
            self.storage.delete(self.storage_key)
            return None

    def set(self, location: DeliveryLocation) -> DeliveryLocation:
        self.storage.set(self.storage_key, location.model_dump_json())
        return location

    def set_details(self, details: str) -> DeliveryLocation:
        """Save manually entered location details.

        The current bed id is kept; without one a 'manual-<ms>' id is used.

        Raises:
            ValueError: If details are blank
        """
        details = details.strip()
        if not details:
            raise ValueError("Delivery details must not be empty")

        current = self.get()
        bed_id = current.bed_id if current else f"manual-{int(time.time() * 1000)}"
        return self.set(DeliveryLocation(bed_id=bed_id, details=details))

    def set_from_qr_payload(self, payload: str) -> DeliveryLocation:
        """Parse a scanned bed QR code and remember the location.

        Raises:
            InvalidQrCode: If the payload cannot be used
        """
        location = parse_qr_payload(payload)
        logger.info(f"Session {self.session_id} scanned bed {location.bed_id}")
        return self.set(location)

    def clear(self) -> None:
        self.storage.delete(self.storage_key)


class FavoritesService:
    """Customer favorites, keyed by restaurant and item."""

    def __init__(self, favorites_repository: FavoritesRepository) -> None:
        self.favorites_repository = favorites_repository

    async def list_favorites(self, customer_id: str) -> list[FavoriteItem]:
        """Favorites, most recently added first."""
        favorites = self.favorites_repository.list_favorites(customer_id)
        if favorites is None:
            raise PersistenceFailure("Could not load favorites")
        return favorites

    async def is_favorite(self, customer_id: str, restaurant_id: str, item_id: str) -> bool:
        key = favorite_key(restaurant_id, item_id)
        return any(favorite.favorite_id == key for favorite in await self.list_favorites(customer_id))

    async def add_favorite(self, customer_id: str, menu_item: MenuItem) -> FavoriteItem:
        favorite = FavoriteItem(
            customer_id=customer_id,
            item_id=menu_item.id,
            restaurant_id=menu_item.restaurant_id,
            item_name=menu_item.name,
            added_at=datetime.now(UTC),
        )
        if not self.favorites_repository.save_favorite(favorite):
            raise PersistenceFailure("Could not save favorite")
        return favorite

    async def remove_favorite(self, customer_id: str, restaurant_id: str, item_id: str) -> None:
        key = favorite_key(restaurant_id, item_id)
        if not self.favorites_repository.delete_favorite(customer_id, key):
            raise PersistenceFailure("Could not remove favorite")

    async def toggle_favorite(self, customer_id: str, menu_item: MenuItem) -> bool:
        """Add the item if missing, remove it otherwise.

        Returns:
            True if the item is a favorite after the call
        """
        if await self.is_favorite(customer_id, menu_item.restaurant_id, menu_item.id):
            await self.remove_favorite(customer_id, menu_item.restaurant_id, menu_item.id)
            return False

        await self.add_favorite(customer_id, menu_item)
        return True


class BedQrCodeService:
    """Admin management of bed QR code records."""

    def __init__(self, qr_code_repository: BedQrCodeRepository) -> None:
        """Initialize the BedQrCodeService.

        Args:
            qr_code_repository: Repository for bed QR code records
        """
        self.qr_code_repository = qr_code_repository

    async def list_qr_codes(self) -> list[BedQrCode]:
        """All records, newest first."""
        qr_codes = self.qr_code_repository.list_qr_codes()
        if qr_codes is None:
            raise PersistenceFailure("Could not load bed QR codes")
        return qr_codes

    async def get_qr_code(self, qr_code_id: str) -> BedQrCode:
        qr_code = self.qr_code_repository.get_qr_code(qr_code_id)
        if qr_code is None:
            raise BedQrCodeNotFound(qr_code_id)
        return qr_code

    @staticmethod
    def _build(location: DeliveryLocation, created_at: datetime) -> BedQrCode:
        return BedQrCode(
            id=uuid.uuid4().hex,
            bed_id=location.bed_id,
            details=location.details,
            department=location.department,
            room=location.room,
            qr_code_value=encode_qr_payload(location),
            is_active=True,
            created_at=created_at,
        )

    async def create_qr_code(self, location: DeliveryLocation) -> BedQrCode:
        """Create an active record for one bed."""
        qr_code = self._build(location, datetime.now(UTC))
        if not self.qr_code_repository.save_qr_code(qr_code):
            raise PersistenceFailure("Could not save bed QR code")

        logger.info(f"Created bed QR code {qr_code.id} for bed {qr_code.bed_id}")
        return qr_code

    async def update_qr_code(self, qr_code_id: str, location: DeliveryLocation) -> BedQrCode:
        """Replace the location of a record and regenerate its QR value.

        Raises:
            BedQrCodeNotFound: If the record does not exist
        """
        existing = await self.get_qr_code(qr_code_id)

        updated = existing.model_copy(
            update={
                "bed_id": location.bed_id,
                "details": location.details,
                "department": location.department,
                "room": location.room,
                "qr_code_value": encode_qr_payload(location),
                "last_updated_at": datetime.now(UTC),
            }
        )
        if not self.qr_code_repository.save_qr_code(updated):
            raise PersistenceFailure(f"Could not update bed QR code {qr_code_id}")
        return updated

    async def toggle_qr_code(self, qr_code_id: str) -> BedQrCode:
        """Flip a record between active and inactive.

        Raises:
            BedQrCodeNotFound: If the record does not exist
        """
        existing = await self.get_qr_code(qr_code_id)
        is_active = not existing.is_active

        if not self.qr_code_repository.set_active(qr_code_id, is_active):
            raise PersistenceFailure(f"Could not update bed QR code {qr_code_id}")
        return existing.model_copy(update={"is_active": is_active})

    async def batch_create(
        self,
        prefix: str,
        start_number: int,
        count: int,
        details_template: str,
        suffix: str = "",
        department: str | None = None,
        room: str | None = None,
    ) -> list[BedQrCode]:
        """Create records for a numbered range of beds.

        Bed ids are prefix + number + suffix. The details template may use the
        placeholders {prefix}, {number}, {suffix}, {department} and {room};
        missing department or room values render as "无".

        Args:
            prefix: Bed id prefix, e.g. "A-101-"
            start_number: First bed number (>= 0)
            count: Number of records to create (1-100)
            details_template: Template for the human-readable details
            suffix: Bed id suffix
            department: Department for every record
            room: Room for every record

        Returns:
            The created records

        Raises:
            ValueError: If the arguments are out of range
        """
        if not prefix:
            raise ValueError("prefix must not be empty")
        if start_number < 0:
            raise ValueError("start_number must not be negative")
        if not 1 <= count <= MAX_BATCH_SIZE:
            raise ValueError(f"count must be between 1 and {MAX_BATCH_SIZE}")
        if not details_template.strip():
            raise ValueError("details_template must not be empty")

        created_at = datetime.now(UTC)
        qr_codes = []
        for number in range(start_number, start_number + count):
            details = render_details_template(
                details_template, prefix, number, suffix, department, room
            )
            location = DeliveryLocation(
                bed_id=f"{prefix}{number}{suffix}",
                details=details,
                department=department or None,
                room=room or None,
            )
            qr_codes.append(self._build(location, created_at))

        if not self.qr_code_repository.save_qr_codes(qr_codes):
            raise PersistenceFailure("Could not save bed QR codes")

        logger.info(f"Created {len(qr_codes)} bed QR codes with prefix {prefix}")
        return qr_codes


def render_details_template(
    template: str,
    prefix: str,
    number: int,
    suffix: str = "",
    department: str | None = None,
    room: str | None = None,
) -> str:
    replacements = {
        "{prefix}": prefix,
        "{number}": str(number),
        "{suffix}": suffix,
        "{department}": department or MISSING_TEMPLATE_VALUE,
        "{room}": room or MISSING_TEMPLATE_VALUE,
    }
    for placeholder, value in replacements.items():
        template = template.replace(placeholder, value)
    return template
