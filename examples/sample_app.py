"""
Sample application instrumented with the Luzzi SDK.

Demonstrates the usual lifecycle:
- Initializing the client with a project key
- Tracking anonymous events
- Identifying a user and tracking as them
- Resetting identity on logout
- Flushing before shutdown

Requirements:
    pip install luzzi-analytics python-dotenv
"""

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

from luzzi.sdk import DeviceInfo, LuzziClient, LuzziConfig


async def example_anonymous_events(client: LuzziClient) -> None:
    """Example: Track events before the user is known."""
    print("\n=== Example 1: Anonymous Events ===")

    client.track("app_opened")
    client.track("pricing_viewed", {"plan": "pro", "source": "navbar"})

    print(f"Session: {client.get_session_id()}")
    print(f"Buffered: {len(client.queue)} events")


async def example_identified_user(client: LuzziClient) -> None:
    """Example: Identify a user; later events carry their id."""
    print("\n=== Example 2: Identify ===")

    client.identify("user_12345", {"email": "alice@example.com", "plan": "pro"})
    client.track("checkout_started", {"amount": 49.0, "currency": "EUR"})

    print(f"User: {client.get_user_id()}")
    print(f"Buffered: {len(client.queue)} events")


async def example_logout(client: LuzziClient) -> None:
    """Example: Reset identity on logout and start a fresh session."""
    print("\n=== Example 3: Logout ===")

    old_session = client.get_session_id()
    client.reset()
    client.track("logged_out")

    print(f"Old session: {old_session}")
    print(f"New session: {client.get_session_id()}")


async def main() -> None:
    """Run the examples against the API configured in the environment."""
    load_dotenv()
    api_key = os.getenv("LUZZI_API_KEY")
    api_url = os.getenv("LUZZI_API_URL", "http://localhost:8000")

    if not api_key:
        print("Error: LUZZI_API_KEY not set in environment", file=sys.stderr)
        print("Set it in .env file or export LUZZI_API_KEY=pk_test_...")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO)

    config = LuzziConfig(
        api_url=api_url,
        batch_size=5,
        flush_interval=5000,
        debug=True,
        device_info=DeviceInfo(app_version="1.4.0"),
    )

    async with LuzziClient() as client:
        client.init(api_key, config)

        await example_anonymous_events(client)
        await example_identified_user(client)
        await example_logout(client)

        await client.flush()
        print(f"\nFlushed; {len(client.queue)} events left in buffer")

    print("\n=== All examples completed ===")


if __name__ == "__main__":
    asyncio.run(main())
