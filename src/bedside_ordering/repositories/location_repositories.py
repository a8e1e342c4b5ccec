"""DynamoDB repositories for favorites and bed QR codes."""

import logging

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from bedside_ordering.models.location_models import BedQrCode, FavoriteItem

logger = logging.getLogger(__name__)


class FavoritesRepository:
    """Repository for favorite items.

    Manages favorites in DynamoDB with composite key (customer_id, favorite_id).
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def save_favorite(self, favorite: FavoriteItem) -> bool:
        """Save a favorite (idempotent per restaurant/item pair).

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=favorite.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save favorite: {e}")  # pragma: no cover
            return False

    def delete_favorite(self, customer_id: str, favorite_id: str) -> bool:
        """Delete a favorite.

        Returns:
            bool: True if delete succeeded, False otherwise
        """
        try:
            self.table.delete_item(Key={"customer_id": customer_id, "favorite_id": favorite_id})
            return True

        except ClientError as e:
            logger.error(f"Failed to delete favorite: {e}")  # pragma: no cover
            return False

    def list_favorites(self, customer_id: str) -> list[FavoriteItem] | None:
        """List a customer's favorites, newest first.

        Args:
            customer_id: Customer session identifier

        Returns:
            list: Favorites (empty list if none found), or None on failure
        """
        try:
            response = self.table.query(KeyConditionExpression=Key("customer_id").eq(customer_id))

            favorites = [FavoriteItem.from_dynamodb_item(item) for item in response.get("Items", [])]
            return sorted(favorites, key=lambda favorite: favorite.added_at, reverse=True)

        except ClientError as e:
            logger.error(f"Failed to list favorites: {e}")  # pragma: no cover
            return None


class BedQrCodeRepository:
    """Repository for bed QR code records.

    Manages records in DynamoDB with id as partition key.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def save_qr_code(self, qr_code: BedQrCode) -> bool:
        """Save or replace a QR code record.

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=qr_code.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save bed QR code: {e}")  # pragma: no cover
            return False

    def save_qr_codes(self, qr_codes: list[BedQrCode]) -> bool:
        """Save several records in one batch writer session.

        Returns:
            bool: True if every write was accepted, False otherwise
        """
        try:
            with self.table.batch_writer() as batch:
                for qr_code in qr_codes:
                    batch.put_item(Item=qr_code.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to batch save bed QR codes: {e}")  # pragma: no cover
            return False

    def get_qr_code(self, qr_code_id: str) -> BedQrCode | None:
        """Retrieve a QR code record by id.

        Returns:
            BedQrCode if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"id": qr_code_id})

            if "Item" not in response:
                return None

            return BedQrCode.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get bed QR code: {e}")  # pragma: no cover
            return None

    def list_qr_codes(self) -> list[BedQrCode] | None:
        """List every QR code record, newest first.

        Returns:
            list: Records (empty list if none found), or None on failure
        """
        try:
            items = []
            scan_kwargs: dict = {}
            while True:
                response = self.table.scan(**scan_kwargs)
                items.extend(response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]

            qr_codes = [BedQrCode.from_dynamodb_item(item) for item in items]
            return sorted(qr_codes, key=lambda qr_code: qr_code.created_at, reverse=True)

        except ClientError as e:
            logger.error(f"Failed to list bed QR codes: {e}")  # pragma: no cover
            return None

    def set_active(self, qr_code_id: str, is_active: bool) -> bool:
        """Activate or deactivate a QR code record.

        Returns:
            bool: True if update succeeded, False otherwise
        """
        try:
            self.table.update_item(
                Key={"id": qr_code_id},
                UpdateExpression="SET is_active = :active",
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeValues={":active": is_active},
            )
            return True

        except ClientError as e:
            logger.error(f"Failed to update bed QR code: {e}")  # pragma: no cover
            return False
