from drone_agent.domain.conversation import MessageRecord, conversational_window, new_message
from drone_agent.domain.models import ChatMessage
from drone_agent.tools.definitions import ToolCall


def test_models_exist():
    cm = ChatMessage(role="user", content="hi")
    assert cm.role == "user"
    mr = new_message("t1", "user", "x")
    assert mr.id.startswith("m-")
    assert mr.sequence == 0
    assert mr.thread_id == "t1"


def test_record_dict_round_trip_keeps_tool_call():
    rec = new_message("t1", "assistant", "", tool_call=ToolCall(id="c1", name="retrieve", arguments={"query": "q"}))
    rec.sequence = 3
    back = MessageRecord.from_dict(rec.to_dict())
    assert back.tool_call == rec.tool_call
    assert back.sequence == 3
    assert back.created_at == rec.created_at
    assert not back.is_conversational


def test_conversational_window_skips_tool_traffic():
    msgs = [new_message("t", "user", f"u{i}") for i in range(12)]
    msgs.insert(3, new_message("t", "tool", {"ok": True}))
    msgs.insert(4, new_message("t", "assistant", "", tool_call=ToolCall(id="c", name="setWingSpan", arguments={})))
    window = conversational_window(msgs, 10)
    assert [m.text for m in window] == [f"u{i}" for i in range(2, 12)]
    assert conversational_window(msgs, 0) == []
