"""
Type conversion between JSON-shaped Python values and DynamoDB attributes.

boto3 refuses Python floats and hands numbers back as Decimal, so event
properties and device snapshots are converted on the way in and out.
"""

from decimal import Decimal
from typing import Any


def to_dynamodb(value: Any) -> Any:
    """
    Convert a JSON-compatible value into something boto3 can store.

    Floats become Decimals (via their repr so 0.1 stays 0.1), containers are
    converted recursively, and None values inside maps are dropped.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, dict):
        return {
            str(k): to_dynamodb(v) for k, v in value.items() if v is not None
        }
    if isinstance(value, (list, tuple)):
        return [to_dynamodb(v) for v in value]
    return value


def from_dynamodb(value: Any) -> Any:
    """Convert a DynamoDB item (or part of one) back to plain JSON types."""
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, dict):
        return {k: from_dynamodb(v) for k, v in value.items()}
    if isinstance(value, (list, set)):
        return [from_dynamodb(v) for v in value]
    return value
