"""Event dispatcher (multicast delegate) tools."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .constants import EVENT_GRAPH
from .formatting import format_typed_params, next_steps, saved_line

ADD_EVENT_DISPATCHER_ENDPOINT = "/api/add-event-dispatcher"
LIST_EVENT_DISPATCHERS_ENDPOINT = "/api/list-event-dispatchers"


class DispatcherParameter(BaseModel):
    """One typed parameter of a dispatcher signature."""
    name: str = Field(description="Parameter name")
    type: str = Field(description="Parameter type (e.g. 'float', 'bool', 'string', 'FVector', 'object')")


def build_add_event_dispatcher_body(
    blueprint: str,
    dispatcher_name: str,
    parameters: Optional[List[DispatcherParameter]] = None
) -> Dict[str, Any]:
    """Request body; ``parameters`` is only sent when non-empty."""
    body: Dict[str, Any] = {"blueprint": blueprint, "dispatcherName": dispatcher_name}
    if parameters:
        body["parameters"] = [p.model_dump() if isinstance(p, BaseModel) else dict(p) for p in parameters]
    return body


def format_add_event_dispatcher(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    blueprint = body.get("blueprint")
    lines = [
        "Event dispatcher created successfully.",
        f"Blueprint: {data.get('blueprint')}",
        f"Dispatcher: {data.get('dispatcherName')}",
    ]
    parameters = data.get("parameters") or []
    if parameters:
        lines.append("Parameters:")
        lines.extend(f"  {p.get('name')}: {p.get('type')}" for p in parameters)
    else:
        lines.append("Parameters: (none)")
    lines += saved_line(data)
    lines += next_steps(
        f'list_event_dispatchers(blueprint="{blueprint}") - verify the dispatcher was created',
        f'add_node(blueprint="{blueprint}", graph="{EVENT_GRAPH}", nodeType="CallFunction", functionName="<dispatcherName>_Event") - bind to it',
    )
    return "\n".join(lines)


def format_list_event_dispatchers(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    dispatchers = data.get("dispatchers") or []
    count = data.get("count", len(dispatchers))
    lines = [
        f"Blueprint: {data.get('blueprint')}",
        f"Event dispatchers: {count}",
    ]
    if dispatchers:
        lines.append("")
        lines.extend(f"  {d.get('name')}({format_typed_params(d.get('parameters'))})" for d in dispatchers)
    return "\n".join(lines)
