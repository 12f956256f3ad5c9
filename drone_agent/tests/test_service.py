import asyncio

import pytest

from drone_agent.api.service import ChatService
from drone_agent.domain.exceptions import NetworkError, TurnAbortedError, ValidationError

from conftest import call, text_reply, tool_reply


def test_chat_returns_tool_object_and_history_hides_tool_traffic(make_context):
    ctx, _ = make_context([
        tool_reply(call("setPropellerSize", {"propellerScale": 2})),
        text_reply("Anything else?"),
    ])
    service = ChatService(ctx)
    first = asyncio.run(service.chat("Double the propellers", "c1"))
    assert first == {
        "response": {"name": "setPropellerSize", "args": {"propellerScale": 2}, "message": "Propeller scale set to 2."}
    }
    second = asyncio.run(service.chat("thanks", "c1"))
    assert second == {"response": "Anything else?"}

    history = asyncio.run(service.history("c1"))
    assert history == [
        {"role": "user", "content": "Double the propellers"},
        {"role": "system", "content": "Propeller scale set to 2."},
        {"role": "user", "content": "thanks"},
        {"role": "system", "content": "Anything else?"},
    ]


@pytest.mark.parametrize("user_input,conversation_id", [("", "c1"), ("hi", ""), (None, "c1"), ("hi", 3)])
def test_chat_validates_request(make_context, user_input, conversation_id):
    ctx, provider = make_context([])
    with pytest.raises(ValidationError) as exc:
        asyncio.run(ChatService(ctx).chat(user_input, conversation_id))
    assert exc.value.code == "INVALID_REQUEST"
    assert provider.requests == []


def test_chat_failure_raises_turn_aborted(make_context):
    ctx, _ = make_context([NetworkError(code="NETWORK_ERROR", message="down")])
    service = ChatService(ctx)
    with pytest.raises(TurnAbortedError) as exc:
        asyncio.run(service.chat("hello", "c1"))
    assert exc.value.http_status == 500
    assert asyncio.run(service.history("c1")) == []


def test_delete_history_is_idempotent(make_context):
    ctx, _ = make_context([text_reply("hi")])
    service = ChatService(ctx)
    asyncio.run(service.chat("hello", "c1"))
    assert asyncio.run(service.list_conversations()) == ["c1"]
    asyncio.run(service.delete_history("c1"))
    asyncio.run(service.delete_history("c1"))
    assert asyncio.run(service.history("c1")) == []
    assert asyncio.run(service.list_conversations()) == []
