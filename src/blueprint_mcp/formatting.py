"""Text helpers shared by the tool formatters."""

from typing import Any, Dict, Iterable, List, Optional

TYPE_NAME_DOCS = (
    "Type name formats: C++ USTRUCTs use F-prefixed name (e.g. 'FVitals', 'FDeviceState'), "
    "BP structs (UserDefinedStruct) use asset name (e.g. 'S_Vitals'), enums use enum name (e.g. 'ELungSound')."
)

UNRESOLVED_TYPE_PATTERNS = ("<None>", "<unknown>", "None", "NONE")

WARNING_MARK = "⚠"
OUTPUT_ARROW = "→"
INPUT_ARROW = "←"


def js_str(value: Any) -> str:
    """Render a JSON value the way the engine tooling prints it (true/false, not True/False)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def flag_type(type_name: Optional[str]) -> str:
    """Prefix a warning mark to type names the engine could not resolve."""
    if not type_name:
        return f"{WARNING_MARK} <None>"
    for pattern in UNRESOLVED_TYPE_PATTERNS:
        if pattern in type_name:
            return f"{WARNING_MARK} {type_name}"
    return type_name


def format_typed_params(params: Optional[Iterable[Dict[str, Any]]]) -> str:
    """Render ``[{name, type}]`` as ``name: type, ...`` with unresolved types flagged."""
    return ", ".join(f"{p.get('name') or '?'}: {flag_type(p.get('type'))}" for p in params or [])


def format_pin(pin: Dict[str, Any]) -> str:
    """One pin line: direction arrow, name, type and optional subtype."""
    arrow = OUTPUT_ARROW if pin.get("direction") == "Output" else INPUT_ARROW
    subtype = f" ({pin['subtype']})" if pin.get("subtype") else ""
    return f"{arrow} {pin.get('name')}: {pin.get('type')}{subtype}"


def format_pin_type(type_name: Any, subtype: Any = None) -> str:
    return f"{js_str(type_name)}{f' ({subtype})' if subtype else ''}"


def saved_line(data: Dict[str, Any]) -> List[str]:
    """``Saved: true|false`` when the engine reported the save result."""
    if "saved" in data and data["saved"] is not None:
        return [f"Saved: {js_str(data['saved'])}"]
    return []


def next_steps(*steps: str) -> List[str]:
    """Follow-up tool call suggestions, preceded by a blank line."""
    return ["", "Next steps:", *(f"  {step}" for step in steps)]


def format_updated_state(data: Dict[str, Any]) -> List[str]:
    """Render the ``updatedState`` block some mutation responses carry."""
    state = data.get("updatedState")
    if not state:
        return []

    lines = ["", "Updated state:"]
    variables = state.get("variables") or []
    if variables:
        lines.append("  Variables: " + ", ".join(f"{v.get('name')}: {v.get('type')}" for v in variables))
    pins = state.get("pins") or []
    if pins:
        lines.append("  Pins:")
        lines.extend(f"    {format_pin(pin)}" for pin in pins)
    if state.get("nodeCount") is not None:
        lines.append(f"  Nodes: {state['nodeCount']}")
    if state.get("graphCount") is not None:
        lines.append(f"  Graphs: {state['graphCount']}")
    return lines


def or_empty(value: Any) -> str:
    """Engine string values that may be blank, rendered as ``(empty)``."""
    return js_str(value) if value else "(empty)"
