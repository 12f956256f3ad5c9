import asyncio

from drone_agent.domain.conversation import Thread, new_message
from drone_agent.domain.models import RetrievedDocument
from drone_agent.flows.synthesizer import ResponseSynthesizer
from drone_agent.tools.definitions import ToolCall

from conftest import FakeProvider, text_reply


def _thread(n):
    msgs = []
    for i in range(n):
        msgs.append(new_message("t", "user", f"q{i}"))
        msgs.append(new_message("t", "assistant", f"a{i}"))
    msgs.append(new_message("t", "assistant", "", tool_call=ToolCall(id="c", name="retrieve", arguments={"query": "q"})))
    msgs.append(new_message("t", "tool", "Source: s\nContent: c"))
    return Thread(id="t", messages=msgs)


def test_prompt_embeds_context_and_bounded_window():
    synth = ResponseSynthesizer(FakeProvider([]), model="drone-chat", window=4)
    docs = [RetrievedDocument(source_id="docs/a", content="Flight time depends on battery.", score=1.0)]
    prompt = synth.build_prompt(_thread(6).messages, docs)
    assert prompt[0].role == "system"
    assert "Source: docs/a\nContent: Flight time depends on battery." in prompt[0].content
    assert [m.content for m in prompt[1:]] == ["q4", "a4", "q5", "a5"]
    assert all(m.role in ("user", "assistant") for m in prompt[1:])


def test_prompt_without_documents_asks_to_admit_ignorance():
    synth = ResponseSynthesizer(FakeProvider([]), model="drone-chat")
    prompt = synth.build_prompt(_thread(1).messages, [])
    assert "don't know" in prompt[0].content
    assert "Source:" not in prompt[0].content


def test_synthesize_makes_one_call_and_records_sources():
    provider = FakeProvider([text_reply("It depends on the battery.")])
    synth = ResponseSynthesizer(provider, model="drone-chat")
    docs = [RetrievedDocument(source_id="docs/a", content="c", score=1.0)]
    answer = asyncio.run(synth.synthesize(_thread(1), docs))
    assert answer.role == "assistant"
    assert answer.content == "It depends on the battery."
    assert answer.meta == {"grounded": True, "sources": ["docs/a"]}
    assert len(provider.requests) == 1
    assert provider.requests[0].tools is None
