import asyncio
import re
from typing import Any, Dict, List

import pytest

from drone_agent.config.settings import Settings
from drone_agent.domain.models import ChatChoice, ChatMessage, ChatResult
from drone_agent.flows.runner import build_context
from drone_agent.infrastructure.storage.memory_store import InMemoryConversationStore
from drone_agent.retrieval.vector_store import InMemoryVectorStore
from drone_agent.tools.definitions import ToolCall


VOCAB = ["flight", "time", "battery", "wing", "propeller", "payload", "rotary", "fixed", "range", "motor"]


def text_reply(text: str) -> ChatResult:
    msg = ChatMessage(role="assistant", content=text)
    return ChatResult(provider="fake", model="drone-chat", choices=[ChatChoice(index=0, message=msg)])


def tool_reply(*calls: ToolCall, text: str = "") -> ChatResult:
    msg = ChatMessage(role="assistant", content=text, tool_calls=list(calls))
    return ChatResult(provider="fake", model="drone-chat", choices=[ChatChoice(index=0, message=msg)])


def call(name: str, args: Dict[str, Any], call_id: str = "call-1", parse_error=None) -> ToolCall:
    return ToolCall(id=call_id, name=name, arguments=args, parse_error=parse_error)


class FakeProvider:
    """Replays scripted replies; an Exception entry is raised, a float sleeps first."""

    name = "fake"

    def __init__(self, replies: List[Any]):
        self._replies = list(replies)
        self.requests = []

    async def chat(self, req):
        self.requests.append(req)
        if not self._replies:
            raise AssertionError("unexpected model call")
        reply = self._replies.pop(0)
        if isinstance(reply, float):
            await asyncio.sleep(reply)
            return text_reply("late")
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeEmbeddings:
    """Bag-of-words vectors over a tiny fixed vocabulary."""

    def __init__(self):
        self.calls = 0

    def _vector(self, text: str) -> List[float]:
        words = re.findall(r"[a-z]+", text.lower())
        return [float(words.count(w)) for w in VOCAB]

    async def embed_documents(self, texts):
        self.calls += 1
        return [self._vector(t) for t in texts]

    async def embed_query(self, text):
        self.calls += 1
        return self._vector(text)


DOCS = [
    ("Flight time depends on battery capacity and payload weight.", {"source": "docs/flight-time"}),
    ("Fixed wing drones cover long range with wide wing span.", {"source": "docs/fixed-wing"}),
    ("Rotary drones use a motor per propeller.", {"source": "docs/rotary"}),
]


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        openai_api_key=None,
        kimi_api_key=None,
        turn_timeout=5.0,
        store_backend="memory",
        sqlite_path=str(tmp_path / "checkpoints.db"),
    )


@pytest.fixture
def vector_store():
    store = InMemoryVectorStore(FakeEmbeddings())
    asyncio.run(store.add_texts([t for t, _ in DOCS], [m for _, m in DOCS]))
    return store


@pytest.fixture
def make_context(test_settings, vector_store):
    def _make(replies, **overrides):
        provider = FakeProvider(replies)
        ctx = build_context(
            overrides.pop("config", test_settings),
            provider=provider,
            store=overrides.pop("store", InMemoryConversationStore()),
            vector_store=overrides.pop("vector_store", vector_store),
            **overrides,
        )
        return ctx, provider

    return _make
