import pytest

from drone_agent.tools.definitions import ToolCall, ToolDef, ToolParam
from drone_agent.tools.drone_tools import (
    ResetConfiguration,
    SetDroneType,
    SetMissionRequirements,
    SetPropellerSize,
    SetWingSpan,
    default_registry,
)
from drone_agent.tools.registry import ToolRegistry


def _dispatch(name, args, parse_error=None):
    return default_registry().dispatch(ToolCall(id="1", name=name, arguments=args, parse_error=parse_error))


def test_registry_contains_drone_tools_and_retrieve():
    reg = default_registry()
    for name in ["setDroneType", "setPropellerSize", "setWingSpan", "retrieve", "resetConfiguration"]:
        assert name in reg
    assert len(reg.names()) == len(set(reg.names()))


def test_registry_rejects_duplicates_and_frozen_register():
    tool = ToolDef(name="t", description="d", params={})
    reg = ToolRegistry([tool])
    with pytest.raises(ValueError):
        reg.register(tool)
    reg.freeze()
    with pytest.raises(RuntimeError):
        reg.register(ToolDef(name="other", description="d", params={}))


def test_dispatch_success_builds_typed_action():
    res = _dispatch("setDroneType", {"type": "Rotary-wing"})
    assert res.ok
    assert res.validated_args == {"type": "Rotary-wing"}
    assert res.action == SetDroneType(type="Rotary-wing")

    res = _dispatch("setPropellerSize", {"propellerScale": 2})
    assert res.action == SetPropellerSize(propeller_scale=2.0)

    res = _dispatch("setMissionRequirements", {"payloadKg": 1.5, "flightTimeMin": 30, "maxRangeKm": 10})
    assert res.action == SetMissionRequirements(payload_kg=1.5, flight_time_min=30.0, max_range_km=10.0)

    assert _dispatch("resetConfiguration", {}).action == ResetConfiguration()


def test_bounds_are_inclusive():
    assert _dispatch("setWingSpan", {"wingSpan": 2}).ok
    assert _dispatch("setWingSpan", {"wingSpan": 5}).action == SetWingSpan(wing_span=5.0)
    assert _dispatch("setPropellerSize", {"propellerScale": 0.5}).ok
    assert _dispatch("setPropellerSize", {"propellerScale": 2.5}).ok


def test_bound_violation_names_field_and_limit():
    res = _dispatch("setWingSpan", {"wingSpan": 100})
    assert not res.ok
    assert res.action is None
    assert res.error == "Field 'wingSpan' must be <= 5 (got 100)."
    res = _dispatch("setPropellerSize", {"propellerScale": 0.1})
    assert "propellerScale" in res.error and ">= 0.5" in res.error


def test_validation_order_and_messages():
    assert _dispatch("noSuchTool", {}).error == "Unknown tool 'noSuchTool'."
    res = _dispatch("setWingSpan", {}, parse_error="Expecting value")
    assert "not a valid JSON object" in res.error
    assert _dispatch("setWingSpan", {}).error == "Field 'wingSpan' is required for 'setWingSpan'."
    # type is checked before bounds
    assert "must be of type number" in _dispatch("setWingSpan", {"wingSpan": "100"}).error
    assert "must be of type number" in _dispatch("setWingSpan", {"wingSpan": True}).error
    assert "must be one of" in _dispatch("setDroneType", {"type": "Helicopter"}).error


def test_unknown_arguments_are_dropped():
    res = _dispatch("setDroneType", {"type": "Fixed-wing", "color": "red"})
    assert res.validated_args == {"type": "Fixed-wing"}


def test_confirmation_messages():
    reg = default_registry()
    ok = reg.dispatch(ToolCall(id="1", name="setWingSpan", arguments={"wingSpan": 3.0}))
    assert reg.confirmation(ok) == "Wingspan set to 3 m."
    bad = reg.dispatch(ToolCall(id="2", name="setWingSpan", arguments={"wingSpan": 100}))
    assert reg.confirmation(bad).startswith("I couldn't apply 'setWingSpan':")


def test_json_schema_rendering():
    tool = ToolDef(
        name="x",
        description="d",
        params={"n": ToolParam(name="n", description="N", required=True, schema={"type": "number", "maximum": 3})},
    )
    schema = tool.to_json_schema()
    assert schema["required"] == ["n"]
    assert schema["properties"]["n"] == {"type": "number", "maximum": 3, "description": "N"}


def test_tool_call_round_trip_dict():
    original = ToolCall(id="c", name="setWingSpan", arguments={"wingSpan": 3}, parse_error=None)
    assert ToolCall.from_dict(original.to_dict()) == original
