#!/usr/bin/env python3
"""
Streaming response example.

This example demonstrates how to stream a reply fragment by fragment
and how to stop a stream early.

Usage:
    export VOLCENGINE_API_KEY="your-api-key"
    python examples/streaming.py
"""

import asyncio

from chat_gateway import (
    ChatClient,
    ChatConfig,
    ChatError,
    ChatSession,
    create_cancel_pair,
)


def print_chunk(chunk: str) -> None:
    print(chunk, end="", flush=True)


async def main() -> None:
    """Run streaming example."""
    config = ChatConfig.from_env(model="doubao-pro-4k")

    async with ChatClient(config) as client:
        session = ChatSession()
        session.set_system_prompt("You are a creative storyteller.")

        print("Streaming response:\n")
        print("-" * 50)

        try:
            result = await client.send_stream(
                session,
                "Tell me a very short story about a robot learning to paint.",
                print_chunk,
            )
        except ChatError as e:
            print(f"\n\n[Error: {e.kind.value}: {e.message}]")
        else:
            print(f"\n\n[Stream ended: {len(result.content)} chars]")
            if result.total_tokens:
                print(f"Total tokens: {result.total_tokens}")

        print("-" * 50)

        # Cancel after a short time, as a UI "stop" button would
        print("\n\nStreaming with cancellation:")
        print("-" * 50)

        handle, token = create_cancel_pair()
        task = asyncio.create_task(
            client.send_stream(session, "Count slowly from 1 to 100.", print_chunk, cancel_token=token)
        )
        await asyncio.sleep(1.0)
        handle.cancel()

        try:
            await task
        except asyncio.CancelledError:
            print(f"\n\n[Cancelled: {handle.reason.value if handle.reason else 'unknown'}]")

        print(f"History: {len(session)} messages")


if __name__ == "__main__":
    asyncio.run(main())
