"""Node and pin tools: add, move, duplicate, delete and wire nodes, and edit
pin defaults, node comments and class default properties.

Several tools accept a batch of items. The engine applies each item on its
own and reports per-item failures in ``results``; the call as a whole only
fails when the request itself is rejected.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel

from .formatting import (
    format_pin, format_pin_type, format_updated_state, js_str, next_steps, or_empty, saved_line
)

NodeType = Literal[
    "BreakStruct", "MakeStruct", "CallFunction", "VariableGet", "VariableSet",
    "DynamicCast", "OverrideEvent", "CallParentFunction",
    "Branch", "Sequence", "CustomEvent",
    "ForEachLoop", "ForLoop", "ForLoopWithBreak", "WhileLoop",
    "SpawnActorFromClass", "Select", "Comment", "Reroute",
]

ADD_NODE_ENDPOINT = "/api/add-node"
DELETE_NODE_ENDPOINT = "/api/delete-node"
MOVE_NODE_ENDPOINT = "/api/move-node"
DUPLICATE_NODES_ENDPOINT = "/api/duplicate-nodes"
CONNECT_PINS_ENDPOINT = "/api/connect-pins"
DISCONNECT_PIN_ENDPOINT = "/api/disconnect-pin"
SET_PIN_DEFAULT_ENDPOINT = "/api/set-pin-default"
GET_NODE_COMMENT_ENDPOINT = "/api/get-node-comment"
SET_NODE_COMMENT_ENDPOINT = "/api/set-node-comment"
SET_BLUEPRINT_DEFAULT_ENDPOINT = "/api/set-blueprint-default"
REFRESH_ALL_NODES_ENDPOINT = "/api/refresh-all-nodes"


class NodeMove(BaseModel):
    nodeId: str
    x: float
    y: float


class PinConnection(BaseModel):
    blueprint: str
    sourceNodeId: str
    sourcePinName: str
    targetNodeId: str
    targetPinName: str


class PinDefault(BaseModel):
    blueprint: str
    nodeId: str
    pinName: str
    value: str


def optional_fields(**fields: Any) -> Dict[str, Any]:
    """Drop fields that were not supplied (None or empty string); 0 and False are kept."""
    return {k: v for k, v in fields.items() if v is not None and v != ""}


def _dump(items: List[Any]) -> List[Dict[str, Any]]:
    return [item.model_dump() if isinstance(item, BaseModel) else dict(item) for item in items]


# --- Request bodies ---

def build_add_node_body(blueprint: str, graph: str, node_type: str, **options: Any) -> Dict[str, Any]:
    """Body for /api/add-node. ``options`` are the camelCase node settings
    (typeName, functionName, posX, ...); unset ones are omitted."""
    body: Dict[str, Any] = {"blueprint": blueprint, "graph": graph, "nodeType": node_type}
    body.update(optional_fields(**options))
    return body


def build_move_node_body(
    blueprint: str,
    node_id: Optional[str] = None,
    x: Optional[float] = None,
    y: Optional[float] = None,
    nodes: Optional[List[NodeMove]] = None
) -> Dict[str, Any]:
    """Batch mode (``nodes``) takes precedence over the single-node fields."""
    body: Dict[str, Any] = {"blueprint": blueprint}
    if nodes is not None:
        body["nodes"] = _dump(nodes)
    else:
        body.update(optional_fields(nodeId=node_id, x=x, y=y))
    return body


def build_batch_or_single_body(batch: Optional[List[Any]], **single: Any) -> Dict[str, Any]:
    """When a batch is given, single-mode fields are ignored."""
    if batch is not None:
        return {"batch": _dump(batch)}
    return optional_fields(**single)


# --- Formatters ---

def format_add_node(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines = ["Node already exists (returning existing)." if data.get("alreadyExists") else "Node added successfully."]
    lines.append(f"Blueprint: {data.get('blueprint')}")
    lines.append(f"Graph: {data.get('graph')}")
    for key, label in (("nodeId", "Node ID"), ("nodeClass", "Node class"), ("nodeTitle", "Node title")):
        if data.get(key):
            lines.append(f"{label}: {data[key]}")

    pins = (data.get("node") or {}).get("pins") or data.get("pins") or []
    if pins:
        lines += ["", "Pins:"]
        lines.extend(f"  {format_pin(pin)}" for pin in pins)

    lines += saved_line(data)
    lines += format_updated_state(data)
    return "\n".join(lines)


def format_delete_node(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines = ["Node removed successfully.", f"Blueprint: {data.get('blueprint')}"]
    for key, label in (("nodeId", "Node ID"), ("nodeClass", "Node class"), ("nodeTitle", "Node title")):
        if data.get(key):
            lines.append(f"{label}: {data[key]}")
    if data.get("disconnectedPins") is not None:
        lines.append(f"Disconnected pins: {js_str(data['disconnectedPins'])}")
    lines += saved_line(data)
    lines += format_updated_state(data)
    return "\n".join(lines)


def _position(x: Any, y: Any) -> str:
    return f"({js_str(x)},{js_str(y)})"


def format_move_node(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines: List[str] = []
    if data.get("results") is not None:
        lines.append(f"Batch move: {js_str(data.get('movedCount'))}/{js_str(data.get('totalRequested'))} node(s) repositioned.")
        lines.append(f"Blueprint: {data.get('blueprint')}")
        for r in data.get("results") or []:
            if r.get("error"):
                lines.append(f"  FAILED {r.get('nodeId')}: {r['error']}")
            else:
                lines.append(f"  OK {r.get('nodeId')}: {_position(r.get('oldX'), r.get('oldY'))} -> {_position(r.get('newX'), r.get('newY'))}")
    else:
        lines.append("Node repositioned successfully.")
        lines.append(f"Blueprint: {data.get('blueprint')}")
        lines.append(f"Node: {data.get('nodeId')}")
        lines.append(f"Position: {_position(data.get('oldX'), data.get('oldY'))} -> {_position(data.get('newX'), data.get('newY'))}")
    lines += saved_line(data)
    return "\n".join(lines)


def format_duplicate_nodes(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines = [
        f"Duplicated {js_str(data.get('duplicatedCount'))} node(s).",
        f"Blueprint: {data.get('blueprint')}",
        f"Graph: {data.get('graph')}",
    ]
    nodes = data.get("nodes") or []
    if nodes:
        lines.append("")
        for n in nodes:
            if n.get("error"):
                lines.append(f"  FAILED {n.get('sourceNodeId')}: {n['error']}")
            else:
                lines.append(f"  {n.get('sourceNodeId')} -> {n.get('newNodeId')} at {_position(n.get('posX'), n.get('posY'))}")
    if data.get("notFound"):
        lines += ["", f"Not found: {', '.join(data['notFound'])}"]
    lines += saved_line(data)
    lines += next_steps("connect_pins - wire the duplicated nodes to other nodes")
    return "\n".join(lines)


def format_connect_pins(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines: List[str] = []
    if data.get("results") is not None:
        lines.append(f"Batch connect: {len(data.get('results') or [])} operation(s)")
        for r in data.get("results") or []:
            if r.get("error"):
                lines.append(f"  FAILED: {r['error']}")
            else:
                lines.append(f"  OK: {r.get('sourcePinName')} → {r.get('targetPinName')}")
    else:
        lines.append(f"Connection {'succeeded' if data.get('success') else 'failed'}.")
        lines.append(f"Blueprint: {data.get('blueprint')}")
        lines.append(f"Source pin type: {format_pin_type(data.get('sourcePinType'), data.get('sourcePinSubtype'))}")
        lines.append(f"Target pin type: {format_pin_type(data.get('targetPinType'), data.get('targetPinSubtype'))}")
    lines += saved_line(data)
    lines += format_updated_state(data)
    return "\n".join(lines)


def format_connect_pins_error(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    """A failed connection lists the pins that do exist and both pin types.

    Responses that carry an ``error`` but still report ``success`` are
    rendered as successes.
    """
    if data.get("success"):
        return format_connect_pins(data, body)
    lines = [f"Error: {data.get('error')}"]
    if data.get("availablePins"):
        lines.append(f"Available pins: {', '.join(data['availablePins'])}")
    if data.get("sourcePinType"):
        lines.append(f"Source pin type: {format_pin_type(data['sourcePinType'], data.get('sourcePinSubtype'))}")
    if data.get("targetPinType"):
        lines.append(f"Target pin type: {format_pin_type(data['targetPinType'], data.get('targetPinSubtype'))}")
    return "\n".join(lines)


def format_disconnect_pin(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines = [
        f"Disconnected {js_str(data.get('disconnectedCount'))} link(s).",
        f"Blueprint: {data.get('blueprint')}",
        f"Saved: {js_str(data.get('saved'))}",
    ]
    lines += format_updated_state(data)
    return "\n".join(lines)


def format_set_pin_default(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines: List[str] = []
    if data.get("results") is not None:
        lines.append(f"Batch set_pin_default: {js_str(data.get('successCount'))}/{js_str(data.get('totalCount'))} succeeded.")
        for r in data.get("results") or []:
            if r.get("error"):
                lines.append(f"  FAILED {r.get('nodeId') or '?'}.{r.get('pinName') or '?'}: {r['error']}")
            else:
                lines.append(f"  OK {r.get('nodeId')}.{r.get('pinName')}: {or_empty(r.get('oldValue'))} -> {js_str(r.get('newValue'))}")
    else:
        lines.append("Pin default set successfully.")
        lines.append(f"Blueprint: {data.get('blueprint')}")
        lines.append(f"Node: {data.get('nodeId')}")
        lines.append(f"Pin: {data.get('pinName')}")
        lines.append(f"Old value: {or_empty(data.get('oldValue'))}")
        lines.append(f"New value: {js_str(data.get('newValue'))}")
    lines += saved_line(data)
    return "\n".join(lines)


def format_get_node_comment(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    return "\n".join([
        f"Blueprint: {data.get('blueprint')}",
        f"Node: {data.get('nodeId')}",
        f"Comment: {or_empty(data.get('comment'))}",
        f"Comment bubble visible: {js_str(data.get('commentBubbleVisible'))}",
    ])


def format_set_node_comment(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines = [
        "Node comment set successfully.",
        f"Blueprint: {data.get('blueprint')}",
        f"Node: {data.get('nodeId')}",
        f"Old comment: {or_empty(data.get('oldComment'))}",
        f"New comment: {or_empty(data.get('newComment'))}",
    ]
    lines += saved_line(data)
    return "\n".join(lines)


def format_set_blueprint_default(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines = [
        "Default property set successfully.",
        f"Blueprint: {data.get('blueprint')}",
        f"Property: {data.get('property')} ({data.get('propertyType')})",
        f"Old value: {or_empty(data.get('oldValue'))}",
        f"New value: {js_str(data.get('newValue'))}",
    ]
    lines += saved_line(data)
    return "\n".join(lines)


def format_refresh_all_nodes(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines = [
        f"Refresh {'succeeded' if data.get('success') else 'completed with issues'}.",
        f"Blueprint: {data.get('blueprint')}",
        f"Graphs: {js_str(data.get('graphCount'))}, Nodes: {js_str(data.get('nodeCount'))}",
        f"Saved: {js_str(data.get('saved'))}",
    ]
    if data.get("warning"):
        lines.append(f"Warning: {data['warning']}")
    return "\n".join(lines)
