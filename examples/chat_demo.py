"""Minimal console demo of a chat turn."""

import asyncio

from mindful_core.api.service import get_default_orchestrator
from mindful_core.domain.models import UserContext


async def main() -> None:
    ctx = UserContext(user_id="demo-user")
    orchestrator = get_default_orchestrator(ctx.user_id)
    question = "I've been feeling a bit stressed about work lately."
    result = await orchestrator.send(ctx, question)
    print("User:", question)
    print("Assistant:", result.content or result.error)
    if result.emotion:
        print("Detected emotion:", result.emotion)
    if orchestrator.banner.visible:
        print(orchestrator.banner.message, "->", orchestrator.banner.target)
    orchestrator.close()


if __name__ == "__main__":
    asyncio.run(main())
