"""Read tools: fetch a Blueprint or one of its graphs as JSON.

These are the source of the node GUIDs and pin names the node tools take.
"""

import json
from typing import Any, Dict

from .errors import error_text

BLUEPRINT_ENDPOINT = "/api/blueprint"
GRAPH_ENDPOINT = "/api/graph"


def build_get_blueprint_query(blueprint: str) -> Dict[str, Any]:
    return {"name": blueprint}


def build_get_graph_query(blueprint: str, graph: str) -> Dict[str, Any]:
    return {"name": blueprint, "graph": graph}


def format_json(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    """The engine's JSON, passed through unchanged for the client to parse."""
    return json.dumps(data)


def format_graph_error(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    """An unknown graph name also lists the graphs the Blueprint does have."""
    text = error_text(data.get("error"))
    if data.get("availableGraphs"):
        text += f"\nAvailable: {', '.join(data['availableGraphs'])}"
    return text
