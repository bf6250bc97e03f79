"""Script to create the Luzzi DynamoDB tables on LocalStack or AWS."""

import asyncio
from typing import Any

import aioboto3
from botocore.exceptions import ClientError


def _key_index(index_name: str, attribute: str) -> dict[str, Any]:
    return {
        "IndexName": index_name,
        "KeySchema": [{"AttributeName": attribute, "KeyType": "HASH"}],
        "Projection": {"ProjectionType": "ALL"},
    }


async def _create_table(dynamodb: Any, table_name: str, **definition: Any) -> None:
    try:
        table = await dynamodb.create_table(
            TableName=table_name,
            BillingMode="PAY_PER_REQUEST",
            **definition,
        )
        await table.wait_until_exists()
        print(f"✓ Created table: {table_name}")
    except ClientError as e:
        if e.response["Error"]["Code"] == "ResourceInUseException":
            print(f"→ Table already exists: {table_name}")
        else:
            raise


async def create_projects_table(dynamodb: Any, table_name: str) -> None:
    """
    Create Projects table with one lookup index per key environment.

    Args:
        dynamodb: DynamoDB resource
        table_name: Name of the projects table
    """
    await _create_table(
        dynamodb,
        table_name,
        KeySchema=[{"AttributeName": "project_id", "KeyType": "HASH"}],
        AttributeDefinitions=[
            {"AttributeName": "project_id", "AttributeType": "S"},
            {"AttributeName": "live_key_id", "AttributeType": "S"},
            {"AttributeName": "test_key_id", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            _key_index("LiveKeyIndex", "live_key_id"),
            _key_index("TestKeyIndex", "test_key_id"),
        ],
    )


async def create_events_table(dynamodb: Any, table_name: str) -> None:
    """
    Create Events table partitioned by project, sorted by timestamp.

    The sort key is "<timestamp>#<event_id>" so events with equal
    timestamps do not collide.
    """
    await _create_table(
        dynamodb,
        table_name,
        KeySchema=[
            {"AttributeName": "project_id", "KeyType": "HASH"},
            {"AttributeName": "event_key", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "project_id", "AttributeType": "S"},
            {"AttributeName": "event_key", "AttributeType": "S"},
        ],
    )


async def main() -> None:
    """Create all required DynamoDB tables."""
    from luzzi.config import settings
    from luzzi.repositories.base import get_dynamodb_config

    print("Creating DynamoDB tables...")
    print(f"Region: {settings.aws_region}")
    print(f"Endpoint: {settings.dynamodb_endpoint_url or 'AWS'}")
    print()

    session = aioboto3.Session()
    async with session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
        await create_projects_table(dynamodb, settings.dynamodb_table_projects)
        await create_events_table(dynamodb, settings.dynamodb_table_events)

    print()
    print("✓ All tables created successfully!")


if __name__ == "__main__":
    asyncio.run(main())
