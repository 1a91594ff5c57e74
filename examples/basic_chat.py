#!/usr/bin/env python3
"""
Basic chat completion example.

This example demonstrates the simplest way to use chat-gateway for
whole-response chat completions.

Usage:
    export VOLCENGINE_API_KEY="your-api-key"
    python examples/basic_chat.py
"""

import asyncio

from chat_gateway import (
    SYSTEM_PROMPTS,
    ChatClient,
    ChatConfig,
    ChatError,
    ChatSession,
    Conversation,
    ErrorKind,
)


async def main() -> None:
    """Run basic chat example."""
    config = ChatConfig.from_env(model="doubao-pro-4k")

    async with ChatClient(config) as client:
        if not await client.check_health():
            print("Service health check failed, trying anyway")

        # Method 1: Explicit session
        session = ChatSession()
        session.set_system_prompt(SYSTEM_PROMPTS["general"])

        result = await client.send(session, "What is the capital of France?")
        print(f"Response: {result.content}")
        if result.usage:
            print(f"Tokens: {result.usage.prompt_tokens} in, {result.usage.completion_tokens} out")
        print()

        # Method 2: Conversation wrapper with a preset prompt
        conversation = Conversation(client, system_prompt=SYSTEM_PROMPTS["customer_service"])
        try:
            result = await conversation.send("How do I return an item?")
            print(f"Support: {result.content}")
        except ChatError as e:
            if e.kind is ErrorKind.RATE_LIMITED:
                print(f"Rate limited, retry after {e.retry_after or 'a pause'}s")
            else:
                print(f"[{e.kind.value}] {e.message}")
        print()

        # Method 3: Reasoning model
        await client.update_config(model="deepseek-r1-250120")
        result = await client.send(ChatSession(), "Is 1001 a prime number?")
        if result.has_reasoning:
            print(f"Reasoning: {result.reasoning}")
        print(f"Answer: {result.content}")

        print(f"\nHistory: {len(conversation.get_history())} messages")


if __name__ == "__main__":
    asyncio.run(main())
