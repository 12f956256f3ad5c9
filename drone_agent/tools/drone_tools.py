"""Drone configuration tools.

Each configuration tool has a typed action dataclass. The dispatcher returns
one of these (``DroneAction``) for the caller to apply to the 3D model; the
reserved ``retrieve`` tool routes the turn to document retrieval instead.
"""

from dataclasses import dataclass
from typing import Any, List, Union

from drone_agent.tools.definitions import ToolDef, ToolParam
from drone_agent.tools.registry import ToolRegistry


RETRIEVE_TOOL = "retrieve"

DRONE_TYPES = ["Fixed-wing", "Rotary-wing"]
MISSION_PURPOSES = ["Surveillance", "Photography", "Delivery", "Mapping", "Other"]
MOTOR_MODELS = ["Leopard LC3542 1250KV", "Sunnysky X2814 1000KV"]
FLIGHT_CONTROLLERS = ["CUAV X7 Pro", "Matek H743-WING"]

PROPELLER_SCALE_MIN = 0.5
PROPELLER_SCALE_MAX = 2.5
WING_SPAN_MIN = 2
WING_SPAN_MAX = 5


@dataclass(frozen=True)
class SetDroneType:
    type: str


@dataclass(frozen=True)
class SetPropellerSize:
    propeller_scale: float


@dataclass(frozen=True)
class SetWingSpan:
    wing_span: float


@dataclass(frozen=True)
class SetMissionPurpose:
    purpose: str


@dataclass(frozen=True)
class SetMissionRequirements:
    payload_kg: float
    flight_time_min: float
    max_range_km: float


@dataclass(frozen=True)
class SelectMotor:
    model: str


@dataclass(frozen=True)
class SelectFlightController:
    model: str


@dataclass(frozen=True)
class ResetConfiguration:
    pass


@dataclass(frozen=True)
class Retrieve:
    query: str


DroneAction = Union[
    SetDroneType,
    SetPropellerSize,
    SetWingSpan,
    SetMissionPurpose,
    SetMissionRequirements,
    SelectMotor,
    SelectFlightController,
    ResetConfiguration,
]


def _fmt(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def drone_tool_defs() -> List[ToolDef]:
    return [
        ToolDef(
            name="setDroneType",
            description=(
                "Changes the drone model shown in the 3D view. Use this only when the user explicitly asks "
                "to switch between 'Fixed-wing' and 'Rotary-wing' models. Do not use this to answer general "
                "questions about drone types."
            ),
            params={
                "type": ToolParam(
                    name="type",
                    description="The type of drone to display",
                    required=True,
                    schema={"type": "string", "enum": DRONE_TYPES},
                ),
            },
            build_action=lambda a: SetDroneType(type=a["type"]),
            confirm=lambda a: f"Drone type set to {a['type']}.",
        ),
        ToolDef(
            name="setPropellerSize",
            description=(
                "Sets a new scale for the propellers on the currently displayed drone. Use this only for direct "
                "requests to make propellers bigger, smaller, or a specific size."
            ),
            params={
                "propellerScale": ToolParam(
                    name="propellerScale",
                    description=(
                        f"The new scale for the propellers. 1 is default, 2 is double size. "
                        f"Must be between {PROPELLER_SCALE_MIN} and {PROPELLER_SCALE_MAX}."
                    ),
                    required=True,
                    schema={"type": "number", "minimum": PROPELLER_SCALE_MIN, "maximum": PROPELLER_SCALE_MAX},
                ),
            },
            build_action=lambda a: SetPropellerSize(propeller_scale=float(a["propellerScale"])),
            confirm=lambda a: f"Propeller scale set to {_fmt(a['propellerScale'])}.",
        ),
        ToolDef(
            name="setWingSpan",
            description=(
                "Sets the exact wingspan for the fixed-wing drone model, specified in meters. Use this only when "
                "the user gives a specific instruction to change the wing size or span."
            ),
            params={
                "wingSpan": ToolParam(
                    name="wingSpan",
                    description=(
                        f"The new wingspan for the fixed-wing drone, in meters. "
                        f"Must be between {WING_SPAN_MIN} and {WING_SPAN_MAX}."
                    ),
                    required=True,
                    schema={"type": "number", "minimum": WING_SPAN_MIN, "maximum": WING_SPAN_MAX},
                ),
            },
            build_action=lambda a: SetWingSpan(wing_span=float(a["wingSpan"])),
            confirm=lambda a: f"Wingspan set to {_fmt(a['wingSpan'])} m.",
        ),
        ToolDef(
            name="setMissionPurpose",
            description="Sets the mission purpose of the drone. Use this only when the user states what the drone will be used for.",
            params={
                "purpose": ToolParam(
                    name="purpose",
                    description="The mission purpose",
                    required=True,
                    schema={"type": "string", "enum": MISSION_PURPOSES},
                ),
            },
            build_action=lambda a: SetMissionPurpose(purpose=a["purpose"]),
            confirm=lambda a: f"Mission purpose set to {a['purpose']}.",
        ),
        ToolDef(
            name="setMissionRequirements",
            description=(
                "Sets the mission requirements: payload in kilograms, flight time in minutes and maximum range "
                "in kilometers. Use this only when the user gives all three values."
            ),
            params={
                "payloadKg": ToolParam(
                    name="payloadKg",
                    description="Payload mass in kilograms",
                    required=True,
                    schema={"type": "number", "minimum": 0},
                ),
                "flightTimeMin": ToolParam(
                    name="flightTimeMin",
                    description="Required flight time in minutes",
                    required=True,
                    schema={"type": "number", "minimum": 0},
                ),
                "maxRangeKm": ToolParam(
                    name="maxRangeKm",
                    description="Maximum range in kilometers",
                    required=True,
                    schema={"type": "number", "minimum": 0},
                ),
            },
            build_action=lambda a: SetMissionRequirements(
                payload_kg=float(a["payloadKg"]),
                flight_time_min=float(a["flightTimeMin"]),
                max_range_km=float(a["maxRangeKm"]),
            ),
            confirm=lambda a: (
                f"Mission requirements set: payload {_fmt(a['payloadKg'])} kg, "
                f"flight time {_fmt(a['flightTimeMin'])} min, range {_fmt(a['maxRangeKm'])} km."
            ),
        ),
        ToolDef(
            name="selectMotor",
            description="Selects the motor model. Use this only when the user names one of the supported motors.",
            params={
                "model": ToolParam(
                    name="model",
                    description="Motor model",
                    required=True,
                    schema={"type": "string", "enum": MOTOR_MODELS},
                ),
            },
            build_action=lambda a: SelectMotor(model=a["model"]),
            confirm=lambda a: f"Motor set to {a['model']}.",
        ),
        ToolDef(
            name="selectFlightController",
            description=(
                "Selects the flight controller. Use this only when the user names one of the supported flight "
                "controllers."
            ),
            params={
                "model": ToolParam(
                    name="model",
                    description="Flight controller model",
                    required=True,
                    schema={"type": "string", "enum": FLIGHT_CONTROLLERS},
                ),
            },
            build_action=lambda a: SelectFlightController(model=a["model"]),
            confirm=lambda a: f"Flight controller set to {a['model']}.",
        ),
        ToolDef(
            name="resetConfiguration",
            description="Resets the drone to its default configuration. Use this only on an explicit reset request.",
            params={},
            build_action=lambda a: ResetConfiguration(),
            confirm=lambda a: "Configuration reset to defaults.",
        ),
    ]


def retrieve_tool_def() -> ToolDef:
    return ToolDef(
        name=RETRIEVE_TOOL,
        description=(
            "Retrieve information related to a query. You are to use this if the query is NOT a command. "
            "This is for answering user queries using the official documentation. Unless you need to ask the "
            "user a clarifying question, use this to answer queries."
        ),
        params={
            "query": ToolParam(
                name="query",
                description="The search query",
                required=True,
                schema={"type": "string"},
            ),
        },
        build_action=lambda a: Retrieve(query=a["query"]),
    )


def default_registry() -> ToolRegistry:
    """Registry with every drone tool plus the reserved retrieve tool, frozen."""
    return ToolRegistry(drone_tool_defs() + [retrieve_tool_def()]).freeze()
