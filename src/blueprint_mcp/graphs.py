"""Blueprint and graph tools: create/reparent Blueprints, create/rename/delete graphs."""

from typing import Any, Dict, Literal

from .constants import EVENT_GRAPH
from .formatting import js_str, next_steps, saved_line

BlueprintType = Literal["Normal", "Interface", "FunctionLibrary", "MacroLibrary"]
GraphType = Literal["function", "macro", "customEvent"]

CREATE_BLUEPRINT_ENDPOINT = "/api/create-blueprint"
REPARENT_BLUEPRINT_ENDPOINT = "/api/reparent-blueprint"
CREATE_GRAPH_ENDPOINT = "/api/create-graph"
RENAME_GRAPH_ENDPOINT = "/api/rename-graph"
DELETE_GRAPH_ENDPOINT = "/api/delete-graph"


def format_create_blueprint(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    name = data.get("blueprintName")
    lines = [
        "Blueprint created successfully.",
        f"Name: {name}",
        f"Path: {data.get('assetPath')}",
        f"Parent: {data.get('parentClass')}",
        f"Type: {data.get('blueprintType')}",
    ]
    if data.get("graphs"):
        lines.append(f"Graphs: {', '.join(data['graphs'])}")
    lines += saved_line(data)
    lines += next_steps(
        f'get_blueprint(blueprint="{name}") - inspect the new Blueprint',
        f'add_node(blueprint="{name}", ...) - add logic',
    )
    return "\n".join(lines)


def format_reparent_blueprint(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines = [
        "Blueprint reparented successfully.",
        f"Blueprint: {data.get('blueprint')}",
        f"Old parent: {data.get('oldParentClass')}",
        f"New parent: {data.get('newParentClass')}",
    ]
    lines += saved_line(data)
    return "\n".join(lines)


def format_create_graph(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    """Suggested follow-ups point at the request's Blueprint and graph.

    A custom event lives in the EventGraph, so nodes are added there rather
    than to a graph named after the event.
    """
    blueprint = body.get("blueprint")
    graph_name = body.get("graphName")
    lines = [
        "Graph created successfully.",
        f"Blueprint: {data.get('blueprint')}",
        f"Graph: {data.get('graphName')}",
        f"Type: {data.get('graphType')}",
    ]
    if data.get("nodeId"):
        lines.append(f"Node ID: {data['nodeId']}")
    lines += saved_line(data)

    if body.get("graphType") == "customEvent":
        add_hint = f'add_node(blueprint="{blueprint}", graph="{EVENT_GRAPH}", ...) - add logic after the event'
    else:
        add_hint = f'add_node(blueprint="{blueprint}", graph="{graph_name}", ...) - add nodes to the new graph'
    lines += next_steps(
        add_hint,
        f'get_blueprint_graph(blueprint="{blueprint}", graph="{graph_name}") - inspect the graph',
    )
    return "\n".join(lines)


def format_rename_graph(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines = [
        "Graph renamed successfully.",
        f"Blueprint: {data.get('blueprint')}",
        f"Old name: {data.get('oldName')}",
        f"New name: {data.get('newName')}",
        f"Type: {data.get('graphType')}",
    ]
    lines += saved_line(data)
    lines += next_steps(
        f'get_blueprint_graph(blueprint="{body.get("blueprint")}", graph="{data.get("newName")}") - inspect the renamed graph',
    )
    return "\n".join(lines)


def format_delete_graph(data: Dict[str, Any], body: Dict[str, Any]) -> str:
    lines = [
        "Graph deleted successfully.",
        f"Blueprint: {data.get('blueprint')}",
        f"Graph: {data.get('graphName')}",
        f"Type: {data.get('graphType')}",
        f"Nodes removed: {js_str(data.get('nodeCount'))}",
    ]
    lines += saved_line(data)
    return "\n".join(lines)
