"""AWS Lambda handler for both API Gateway and DynamoDB stream events.

This module provides a single Lambda entry point that handles:
1. API Gateway requests (via Mangum ASGI adapter for FastAPI)
2. DynamoDB stream records from the orders table (order feed refresh)

The handler automatically detects the event type and routes accordingly.
"""

import asyncio
import logging
import os
from typing import Any

from mangum import Mangum

from bedside_ordering.handlers.event_handler import is_dynamodb_stream_event
from lambda_dependencies import get_fastapi_app, get_stream_handler, initialize_lambda_environment

logger = logging.getLogger(__name__)

# Initialize during cold start; skipped in test mode
if os.getenv("ENVIRONMENT") != "test":
    initialize_lambda_environment()
    app = get_fastapi_app()
    mangum_handler = Mangum(app, lifespan="off")
else:
    app = None  # type: ignore
    mangum_handler = None  # type: ignore


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Multi-purpose Lambda handler for API Gateway and DynamoDB stream events.

    Routes incoming events to the appropriate handler:
    - DynamoDB stream events -> OrderStreamHandler
    - API Gateway requests -> FastAPI via Mangum

    Args:
        event: The Lambda event payload
        context: The Lambda context object

    Returns:
        Response dict with statusCode and body
    """
    logger.info(f"Received Lambda invocation, request_id: {context.aws_request_id}")

    try:
        if is_dynamodb_stream_event(event):
            logger.info(f"Processing {len(event['Records'])} DynamoDB stream records")
            return handle_stream_event(event, context)

        logger.info("Processing API Gateway request via Mangum")
        result: dict[str, Any] = mangum_handler(event, context)
        return result

    except Exception as e:
        logger.exception(f"Unhandled error in Lambda handler: {e}")
        return {
            "statusCode": 500,
            "body": f"Internal server error: {str(e)}",
        }


def handle_stream_event(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Refresh the order feed from a batch of order table changes.

    Args:
        event: The DynamoDB stream event payload
        context: The Lambda context object

    Returns:
        Response dict with statusCode and body
    """
    stream_handler = get_stream_handler()
    result: dict[str, Any] = asyncio.run(stream_handler.handle_stream_event(event, context))

    if result["statusCode"] != 200:
        logger.error(f"Order stream batch not processed: {result['body']}")

    return result
