"""AWS Lambda entry point for the ingestion API.

Wraps the FastAPI app with Mangum so it can serve API Gateway events.
"""

from mangum import Mangum

from luzzi.config import settings
from luzzi.main import app

# api_gateway_base_path strips the stage/mount prefix (e.g. /api) so the
# SDK's "<api_url>/v1/events" reaches the /v1/events route
handler = Mangum(
    app,
    lifespan="off",
    api_gateway_base_path=settings.api_gateway_base_path,
)


def lambda_handler(event: dict, context: object) -> dict:
    """
    AWS Lambda function handler.

    Args:
        event: API Gateway event containing request details
        context: Lambda context object with runtime information

    Returns:
        API Gateway response dict with statusCode, headers, and body
    """
    return handler(event, context)
