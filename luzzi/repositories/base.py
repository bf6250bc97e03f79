"""Base repository class with common DynamoDB operations."""

import logging
from typing import Any

import aioboto3
from botocore.exceptions import ClientError

from luzzi.config import settings

logger = logging.getLogger(__name__)


def get_dynamodb_config() -> dict[str, Any]:
    """
    Build DynamoDB client configuration based on environment.

    For AWS Lambda with IAM roles, returns minimal config (region only).
    For LocalStack, includes endpoint_url and explicit credentials.

    Returns:
        Dictionary of boto3 client parameters
    """
    config: dict[str, Any] = {"region_name": settings.aws_region}

    # Only add endpoint_url if explicitly configured (LocalStack)
    if settings.dynamodb_endpoint_url:
        config["endpoint_url"] = settings.dynamodb_endpoint_url

    if settings.aws_access_key_id:
        config["aws_access_key_id"] = settings.aws_access_key_id
    if settings.aws_secret_access_key:
        config["aws_secret_access_key"] = settings.aws_secret_access_key
    # Lambda hands out temporary credentials; the token must travel with them
    if settings.aws_session_token:
        config["aws_session_token"] = settings.aws_session_token

    if "aws_access_key_id" not in config:
        logger.debug("DynamoDB config: Using default credential chain")

    return config


def is_conditional_check_failure(exc: ClientError) -> bool:
    """Return True if a ClientError is a failed ConditionExpression."""
    return (
        exc.response.get("Error", {}).get("Code")
        == "ConditionalCheckFailedException"
    )


class BaseRepository:
    """
    Base repository providing common DynamoDB operations.

    All repository methods are async and use aioboto3 for
    non-blocking database operations.
    """

    def __init__(self, table_name: str) -> None:
        """
        Initialize repository with table name.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.session = aioboto3.Session()

    async def put_item(self, item: dict[str, Any]) -> None:
        """Put item into DynamoDB table."""
        async with self.session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            await table.put_item(Item=item)

    async def batch_put_items(self, items: list[dict[str, Any]]) -> None:
        """
        Write many items in one batch writer.

        The batch writer splits into 25-item requests and resends
        unprocessed items itself.

        Args:
            items: Items to store, written in the given order
        """
        if not items:
            return
        async with self.session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            async with table.batch_writer() as batch:
                for item in items:
                    await batch.put_item(Item=item)

    async def get_item(self, key: dict[str, Any]) -> dict[str, Any] | None:
        """
        Get item from DynamoDB table by key.

        Args:
            key: Dictionary with partition key and optionally sort key

        Returns:
            Item dictionary or None if not found
        """
        async with self.session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            response = await table.get_item(Key=key)
            return response.get("Item")

    async def query_index(
        self,
        index_name: str,
        attribute: str,
        value: Any,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Query a global secondary index by its hash key.

        Args:
            index_name: Name of the GSI
            attribute: Hash key attribute of the GSI
            value: Value to match
            limit: Optional maximum number of items

        Returns:
            Matching items (possibly empty)
        """
        async with self.session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            query_params: dict[str, Any] = {
                "IndexName": index_name,
                "KeyConditionExpression": "#attr = :value",
                "ExpressionAttributeNames": {"#attr": attribute},
                "ExpressionAttributeValues": {":value": value},
            }
            if limit is not None:
                query_params["Limit"] = limit
            response = await table.query(**query_params)
            return response.get("Items", [])

    async def scan_all(self) -> list[dict[str, Any]]:
        """Scan the whole table, following pagination."""
        async with self.session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            items: list[dict[str, Any]] = []
            scan_params: dict[str, Any] = {}
            while True:
                response = await table.scan(**scan_params)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return items
                scan_params["ExclusiveStartKey"] = last_key

    async def update_item(
        self,
        key: dict[str, Any],
        update_expression: str,
        expression_values: dict[str, Any],
        expression_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        """
        Update item in DynamoDB table.

        Args:
            key: Dictionary with partition key and optionally sort key
            update_expression: DynamoDB update expression
            expression_values: Values for the update expression
            expression_names: Optional attribute name mappings for reserved keywords
            condition_expression: Optional condition the stored item must meet

        Returns:
            Updated item attributes

        Raises:
            ClientError: ConditionalCheckFailedException when the condition
                does not hold, or any other DynamoDB failure
        """
        async with self.session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
            table = await dynamodb.Table(self.table_name)
            update_params: dict[str, Any] = {
                "Key": key,
                "UpdateExpression": update_expression,
                "ExpressionAttributeValues": expression_values,
                "ReturnValues": "ALL_NEW",
            }
            if expression_names:
                update_params["ExpressionAttributeNames"] = expression_names
            if condition_expression:
                update_params["ConditionExpression"] = condition_expression

            response = await table.update_item(**update_params)
            return response.get("Attributes", {})
