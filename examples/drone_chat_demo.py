"""Minimal demonstration of the drone configurator turn engine.

Needs OPENAI_API_KEY (chat and embeddings) in the environment or .env.
"""

import asyncio

from drone_agent.flows.router import TurnRouter
from drone_agent.flows.runner import build_context
from drone_agent.retrieval.vector_store import InMemoryVectorStore
from drone_agent.providers import create_embeddings

DOCS = [
    ("Fixed-wing drones glide on their wings and suit long-range mapping missions.", "docs/fixed-wing"),
    ("Rotary-wing drones hover in place and suit inspection and photography.", "docs/rotary-wing"),
]


async def main() -> None:
    store = InMemoryVectorStore(create_embeddings())
    await store.add_texts([text for text, _ in DOCS], [{"source": src} for _, src in DOCS])
    router = TurnRouter(build_context(vector_store=store))
    for question in ["Switch to the rotary-wing model", "Which drone type is better for mapping?"]:
        result = await router.handle_turn("demo", question)
        print("User:", question)
        print("Agent:", result.to_response())


if __name__ == "__main__":
    asyncio.run(main())
