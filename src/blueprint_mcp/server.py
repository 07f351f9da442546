"""blueprint-mcp - FastMCP server exposing Blueprint authoring tools.

Each tool forwards one JSON request to the HTTP API of the BlueprintMCP
plugin running inside Unreal Engine and returns the answer as text.
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated, List, Optional

from fastmcp import FastMCP
from pydantic import Field

from .config import ServerSettings, MCPTransport, setup_logging
from .client.engine_client import UnrealEngineClient, EngineSettings
from .constants import COMMANDLET_MODE, EDITOR_MODE
from .errors import error_text
from .process import EngineProcessManager
from .tool_decorators import read_only, write_operation
from .tools import Formatter, format_engine_error, is_read_only_tool, run_tool
from .formatting import TYPE_NAME_DOCS
from . import dispatchers, graphs, nodes, reads
from .nodes import NodeMove, MOVE_NODE_ENDPOINT, build_move_node_body, format_move_node
from .resources import (
    BLUEPRINT_LIST_URI, WORKFLOW_RECIPES_URI, WORKFLOW_RECIPES, read_blueprint_list
)

# Initialize settings and logging
settings = ServerSettings()
setup_logging(settings)
logger = logging.getLogger(__name__)

engine_client = UnrealEngineClient(settings=EngineSettings())
process_manager = EngineProcessManager(engine_client)


@asynccontextmanager
async def lifespan(server: FastMCP):
    health = await engine_client.get_health()
    if health is not None:
        process_manager.editor_mode = health.get("mode") == EDITOR_MODE
        logger.info(f"Connected to UE5 {health.get('mode')} - MCP server already running.")
    else:
        logger.info("UE5 server not detected. Commandlet will be spawned on first tool call.")
    try:
        yield
    finally:
        # Only a commandlet we spawned is stopped; the editor keeps serving
        await process_manager.close()
        await engine_client.close()


mcp = FastMCP("blueprint-mcp", lifespan=lifespan)


async def _run_tool(
    tool_name: str,
    endpoint: str,
    body: dict,
    formatter: Formatter,
    error_formatter: Formatter = format_engine_error,
    method: str = "POST"
) -> str:
    """Run a tool with the module-level client, process manager and settings."""
    return await run_tool(
        tool_name,
        endpoint,
        body,
        formatter,
        engine_client,
        process_manager,
        settings,
        read_only=is_read_only_tool(tool_name, globals().get(tool_name)),
        error_formatter=error_formatter,
        method=method
    )


BlueprintRef = Annotated[str, Field(description="Blueprint name or package path (e.g. 'BP_MyActor')")]
NodeId = Annotated[str, Field(description="GUID of the node (from get_blueprint_graph node 'id' field)")]

WRITE = {"readOnlyHint": False, "destructiveHint": False, "idempotentHint": False}
DESTRUCTIVE = {"readOnlyHint": False, "destructiveHint": True, "idempotentHint": False}
READ = {"readOnlyHint": True, "destructiveHint": False, "idempotentHint": True}


# ============================================================================
# Read tools
# ============================================================================

@mcp.tool(annotations={"title": "Get Blueprint", **READ})
@read_only
async def get_blueprint(blueprint: BlueprintRef) -> str:
    """Get full details of a Blueprint as JSON: variables, interfaces, and all graphs with their nodes (including node 'id' GUIDs), pins and connections."""
    query = reads.build_get_blueprint_query(blueprint)
    return await _run_tool("get_blueprint", reads.BLUEPRINT_ENDPOINT, query, reads.format_json, method="GET")


@mcp.tool(annotations={"title": "Get Blueprint Graph", **READ})
@read_only
async def get_blueprint_graph(
    blueprint: BlueprintRef,
    graph: Annotated[str, Field(description="Graph name (e.g. 'EventGraph', a function name)")],
) -> str:
    """Get one named graph of a Blueprint as JSON, with node GUIDs and pin names for the node tools. Unknown graph names report the available graphs."""
    query = reads.build_get_graph_query(blueprint, graph)
    return await _run_tool("get_blueprint_graph", reads.GRAPH_ENDPOINT, query, reads.format_json, reads.format_graph_error, method="GET")


# ============================================================================
# Blueprint and graph tools
# ============================================================================

@mcp.tool(annotations={"title": "Create Blueprint", **WRITE})
@write_operation
async def create_blueprint(
    blueprintName: Annotated[str, Field(description="Name for the new Blueprint (e.g. 'BP_MyActor')")],
    packagePath: Annotated[str, Field(description="Package path (e.g. '/Game/Blueprints/Actors')")],
    parentClass: Annotated[str, Field(description="Parent class - C++ class (e.g. 'Actor', 'Pawn') or Blueprint name")],
    blueprintType: Annotated[graphs.BlueprintType, Field(description="Blueprint type (default: Normal)")] = "Normal",
) -> str:
    """Create a new Blueprint asset. Specify a parent class (C++ or Blueprint) and package path."""
    body = {"blueprintName": blueprintName, "packagePath": packagePath, "parentClass": parentClass, "blueprintType": blueprintType}
    return await _run_tool("create_blueprint", graphs.CREATE_BLUEPRINT_ENDPOINT, body, graphs.format_create_blueprint)


@mcp.tool(annotations={"title": "Reparent Blueprint", **DESTRUCTIVE})
@write_operation
async def reparent_blueprint(
    blueprint: BlueprintRef,
    newParentClass: Annotated[str, Field(description="New parent class name - C++ class (e.g. 'WebUIHUD') or Blueprint name")],
) -> str:
    """Change a Blueprint's parent class. Can reparent to a C++ class (e.g. 'WebUIHUD') or another Blueprint. Compiles, refreshes all nodes, and saves."""
    body = {"blueprint": blueprint, "newParentClass": newParentClass}
    return await _run_tool("reparent_blueprint", graphs.REPARENT_BLUEPRINT_ENDPOINT, body, graphs.format_reparent_blueprint)


@mcp.tool(annotations={"title": "Create Graph", **WRITE})
@write_operation
async def create_graph(
    blueprint: BlueprintRef,
    graphName: Annotated[str, Field(description="Name for the new graph or custom event")],
    graphType: Annotated[graphs.GraphType, Field(description="Type of graph to create: 'function' (new function graph), 'macro' (new macro graph), 'customEvent' (CustomEvent node in EventGraph)")],
) -> str:
    """Create a new function graph, macro graph, or custom event in a Blueprint. For function/macro, creates a new named graph with entry/exit nodes. For customEvent, adds a CustomEvent node to the EventGraph."""
    body = {"blueprint": blueprint, "graphName": graphName, "graphType": graphType}
    return await _run_tool("create_graph", graphs.CREATE_GRAPH_ENDPOINT, body, graphs.format_create_graph)


@mcp.tool(annotations={"title": "Rename Graph", **WRITE})
@write_operation
async def rename_graph(
    blueprint: BlueprintRef,
    graphName: Annotated[str, Field(description="Current name of the function or macro graph")],
    newName: Annotated[str, Field(description="New name for the graph")],
) -> str:
    """Rename a function or macro graph in a Blueprint. Cannot rename EventGraph (Ubergraph pages). Updates all internal references."""
    body = {"blueprint": blueprint, "graphName": graphName, "newName": newName}
    return await _run_tool("rename_graph", graphs.RENAME_GRAPH_ENDPOINT, body, graphs.format_rename_graph)


@mcp.tool(annotations={"title": "Delete Graph", **DESTRUCTIVE})
@write_operation
async def delete_graph(
    blueprint: BlueprintRef,
    graphName: Annotated[str, Field(description="Name of the function or macro graph to delete")],
) -> str:
    """Delete an entire function or macro graph from a Blueprint. Cannot delete EventGraph (Ubergraph pages). All nodes in the graph are removed. Use get_blueprint to see available graphs first."""
    body = {"blueprint": blueprint, "graphName": graphName}
    return await _run_tool("delete_graph", graphs.DELETE_GRAPH_ENDPOINT, body, graphs.format_delete_graph)


# ============================================================================
# Event dispatcher tools
# ============================================================================

@mcp.tool(annotations={"title": "Add Event Dispatcher", **WRITE})
@write_operation
async def add_event_dispatcher(
    blueprint: BlueprintRef,
    dispatcherName: Annotated[str, Field(description="Name for the event dispatcher (e.g. 'OnHealthChanged')")],
    parameters: Annotated[Optional[List[dispatchers.DispatcherParameter]], Field(description="Optional array of typed parameters for the dispatcher signature")] = None,
) -> str:
    """Create an event dispatcher (multicast delegate) on a Blueprint. Optionally include typed parameters in the dispatcher signature."""
    body = dispatchers.build_add_event_dispatcher_body(blueprint, dispatcherName, parameters)
    return await _run_tool("add_event_dispatcher", dispatchers.ADD_EVENT_DISPATCHER_ENDPOINT, body, dispatchers.format_add_event_dispatcher)


@mcp.tool(annotations={"title": "List Event Dispatchers", **READ})
@read_only
async def list_event_dispatchers(blueprint: BlueprintRef) -> str:
    """List all event dispatchers (multicast delegates) on a Blueprint, including their parameter signatures."""
    body = {"blueprint": blueprint}
    return await _run_tool("list_event_dispatchers", dispatchers.LIST_EVENT_DISPATCHERS_ENDPOINT, body, dispatchers.format_list_event_dispatchers)


# ============================================================================
# Node and pin tools
# ============================================================================

@mcp.tool(annotations={"title": "Add Node", **WRITE})
@write_operation
async def add_node(
    blueprint: BlueprintRef,
    graph: Annotated[str, Field(description="Graph name (e.g. 'EventGraph')")],
    nodeType: Annotated[nodes.NodeType, Field(description="Type of node to add")],
    typeName: Annotated[Optional[str], Field(description=f"Struct type name for BreakStruct/MakeStruct. {TYPE_NAME_DOCS}")] = None,
    functionName: Annotated[Optional[str], Field(description="Function name for CallFunction, OverrideEvent, or CallParentFunction (e.g. 'PrintString')")] = None,
    className: Annotated[Optional[str], Field(description="Class name for CallFunction (e.g. 'KismetSystemLibrary')")] = None,
    variableName: Annotated[Optional[str], Field(description="Variable name for VariableGet/VariableSet")] = None,
    castTarget: Annotated[Optional[str], Field(description="Target class name for DynamicCast (e.g. 'BP_MyActor')")] = None,
    eventName: Annotated[Optional[str], Field(description="Event name for CustomEvent (e.g. 'OnDataReady')")] = None,
    actorClass: Annotated[Optional[str], Field(description="Actor class for SpawnActorFromClass. Optional - can also be set via the class pin.")] = None,
    comment: Annotated[Optional[str], Field(description="Comment text for Comment node type")] = None,
    width: Annotated[Optional[float], Field(description="Width for Comment node (default: 400)")] = None,
    height: Annotated[Optional[float], Field(description="Height for Comment node (default: 200)")] = None,
    posX: Annotated[Optional[float], Field(description="X position in the graph (optional)")] = None,
    posY: Annotated[Optional[float], Field(description="Y position in the graph (optional)")] = None,
) -> str:
    """Add a new node to a Blueprint graph. Supports: BreakStruct, MakeStruct, CallFunction, VariableGet, VariableSet, DynamicCast, OverrideEvent, CallParentFunction, Branch, Sequence, CustomEvent, ForEachLoop, ForLoop, ForLoopWithBreak, WhileLoop, SpawnActorFromClass, Select, Comment, Reroute. For Delay/IsValid/PrintString, use CallFunction with className 'KismetSystemLibrary'."""
    body = nodes.build_add_node_body(
        blueprint, graph, nodeType,
        typeName=typeName, functionName=functionName, className=className,
        variableName=variableName, castTarget=castTarget, eventName=eventName,
        actorClass=actorClass, comment=comment, width=width, height=height,
        posX=posX, posY=posY
    )
    return await _run_tool("add_node", nodes.ADD_NODE_ENDPOINT, body, nodes.format_add_node)


@mcp.tool(annotations={"title": "Delete Node", **DESTRUCTIVE})
@write_operation
async def delete_node(blueprint: BlueprintRef, nodeId: NodeId) -> str:
    """Remove a node from a Blueprint graph. Disconnects all pins and removes the node. Use get_blueprint_graph to find node IDs first. Entry/root nodes (FunctionEntry, Event, CustomEvent) cannot be deleted as this would leave the graph uncompilable."""
    body = {"blueprint": blueprint, "nodeId": nodeId}
    return await _run_tool("delete_node", nodes.DELETE_NODE_ENDPOINT, body, nodes.format_delete_node)


@mcp.tool(annotations={"title": "Move Node", **WRITE})
@write_operation
async def move_node(
    blueprint: BlueprintRef,
    nodeId: Annotated[Optional[str], Field(description="Node GUID (for single-node mode)")] = None,
    x: Annotated[Optional[float], Field(description="New X position (for single-node mode)")] = None,
    y: Annotated[Optional[float], Field(description="New Y position (for single-node mode)")] = None,
    nodes: Annotated[Optional[List[NodeMove]], Field(description="Batch mode: array of {nodeId, x, y} objects")] = None,
) -> str:
    """Reposition one or more nodes in a Blueprint graph by setting their X/Y coordinates. Use batch mode with 'nodes' array for multiple moves in one call."""
    body = build_move_node_body(blueprint, nodeId, x, y, nodes)
    return await _run_tool("move_node", MOVE_NODE_ENDPOINT, body, format_move_node)


@mcp.tool(annotations={"title": "Duplicate Nodes", **WRITE})
@write_operation
async def duplicate_nodes(
    blueprint: BlueprintRef,
    graph: Annotated[str, Field(description="Graph name (e.g. 'EventGraph')")],
    nodeIds: Annotated[List[str], Field(description="Array of node GUIDs to duplicate")],
    offsetX: Annotated[Optional[float], Field(description="X offset for duplicated nodes (default: 50)")] = None,
    offsetY: Annotated[Optional[float], Field(description="Y offset for duplicated nodes (default: 50)")] = None,
) -> str:
    """Duplicate one or more nodes within a Blueprint graph. Creates copies at an offset from the originals. The duplicated nodes are not connected to anything - use connect_pins to wire them up."""
    body = {"blueprint": blueprint, "graph": graph, "nodeIds": nodeIds}
    body.update(nodes.optional_fields(offsetX=offsetX, offsetY=offsetY))
    return await _run_tool("duplicate_nodes", nodes.DUPLICATE_NODES_ENDPOINT, body, nodes.format_duplicate_nodes)


@mcp.tool(annotations={"title": "Connect Pins", **WRITE})
@write_operation
async def connect_pins(
    blueprint: Annotated[Optional[str], Field(description="Blueprint name or package path (single mode)")] = None,
    sourceNodeId: Annotated[Optional[str], Field(description="GUID of the source node (from get_blueprint_graph node 'id' field)")] = None,
    sourcePinName: Annotated[Optional[str], Field(description="Name of the output pin on the source node")] = None,
    targetNodeId: Annotated[Optional[str], Field(description="GUID of the target node")] = None,
    targetPinName: Annotated[Optional[str], Field(description="Name of the input pin on the target node")] = None,
    batch: Annotated[Optional[List[nodes.PinConnection]], Field(description="Batch mode: array of connection objects. When provided, single params are ignored.")] = None,
) -> str:
    """Wire two pins together in a Blueprint graph. Uses type-validated connection (TryCreateConnection) so incompatible types will fail with details. Get node IDs and pin names from get_blueprint_graph first."""
    body = nodes.build_batch_or_single_body(
        batch,
        blueprint=blueprint, sourceNodeId=sourceNodeId, sourcePinName=sourcePinName,
        targetNodeId=targetNodeId, targetPinName=targetPinName
    )
    return await _run_tool("connect_pins", nodes.CONNECT_PINS_ENDPOINT, body, nodes.format_connect_pins, nodes.format_connect_pins_error)


@mcp.tool(annotations={"title": "Disconnect Pin", **DESTRUCTIVE})
@write_operation
async def disconnect_pin(
    blueprint: BlueprintRef,
    nodeId: Annotated[str, Field(description="GUID of the node containing the pin")],
    pinName: Annotated[str, Field(description="Name of the pin to disconnect")],
    targetNodeId: Annotated[Optional[str], Field(description="GUID of a specific connected node to disconnect from (optional)")] = None,
    targetPinName: Annotated[Optional[str], Field(description="Pin name on the target node to disconnect from (optional, required if targetNodeId is set)")] = None,
) -> str:
    """Break connections on a specific pin. By default breaks ALL connections on the pin. Optionally specify targetNodeId + targetPinName to break only a single specific link."""
    body = {"blueprint": blueprint, "nodeId": nodeId, "pinName": pinName}
    body.update(nodes.optional_fields(targetNodeId=targetNodeId, targetPinName=targetPinName))
    return await _run_tool("disconnect_pin", nodes.DISCONNECT_PIN_ENDPOINT, body, nodes.format_disconnect_pin)


@mcp.tool(annotations={"title": "Set Pin Default", **WRITE})
@write_operation
async def set_pin_default(
    blueprint: Annotated[Optional[str], Field(description="Blueprint name or package path (required for single mode)")] = None,
    nodeId: Annotated[Optional[str], Field(description="Node GUID (required for single mode)")] = None,
    pinName: Annotated[Optional[str], Field(description="Pin name (required for single mode)")] = None,
    value: Annotated[Optional[str], Field(description="Default value to set (required for single mode)")] = None,
    batch: Annotated[Optional[List[nodes.PinDefault]], Field(description="Batch mode: array of {blueprint, nodeId, pinName, value} objects. When provided, single params are ignored.")] = None,
) -> str:
    """Set the default value of an input pin on a Blueprint node. Supports batch mode for setting multiple pins at once. Use this to set literal/constant values on pins that are not connected to other nodes."""
    if batch is not None:
        body = nodes.build_batch_or_single_body(batch)
    else:
        # An empty value is a legitimate default, so it is sent as-is
        body = nodes.optional_fields(blueprint=blueprint, nodeId=nodeId, pinName=pinName)
        if value is not None:
            body["value"] = value
    return await _run_tool("set_pin_default", nodes.SET_PIN_DEFAULT_ENDPOINT, body, nodes.format_set_pin_default)


@mcp.tool(annotations={"title": "Get Node Comment", **READ})
@read_only
async def get_node_comment(blueprint: BlueprintRef, nodeId: Annotated[str, Field(description="Node GUID")]) -> str:
    """Read the comment text (comment bubble) on a Blueprint node."""
    body = {"blueprint": blueprint, "nodeId": nodeId}
    return await _run_tool("get_node_comment", nodes.GET_NODE_COMMENT_ENDPOINT, body, nodes.format_get_node_comment)


@mcp.tool(annotations={"title": "Set Node Comment", **WRITE})
@write_operation
async def set_node_comment(
    blueprint: BlueprintRef,
    nodeId: Annotated[str, Field(description="Node GUID")],
    comment: Annotated[str, Field(description="Comment text to set (empty string to clear)")],
) -> str:
    """Set or clear the comment text (comment bubble) on a Blueprint node. When setting a non-empty comment, the comment bubble is automatically made visible and pinned."""
    body = {"blueprint": blueprint, "nodeId": nodeId, "comment": comment}
    return await _run_tool("set_node_comment", nodes.SET_NODE_COMMENT_ENDPOINT, body, nodes.format_set_node_comment)


@mcp.tool(annotations={"title": "Set Blueprint Default", **WRITE})
@write_operation
async def set_blueprint_default(
    blueprint: BlueprintRef,
    property: Annotated[str, Field(description="Property name as declared in C++ or Blueprint (e.g. 'WebUIWidgetClass')")],
    value: Annotated[str, Field(description="Value to set. For class properties: Blueprint name or C++ class name. For simple types: the literal value (e.g. 'true', '42', '0.5')")],
) -> str:
    """Set a default property value on a Blueprint's Class Default Object (CDO). Supports TSubclassOf (class references), object references, and simple types (bool, int, float, string, enum). For class/object values, provide the Blueprint asset name (e.g. 'MyWidget') or C++ class name."""
    body = {"blueprint": blueprint, "property": property, "value": value}
    return await _run_tool("set_blueprint_default", nodes.SET_BLUEPRINT_DEFAULT_ENDPOINT, body, nodes.format_set_blueprint_default)


@mcp.tool(annotations={"title": "Refresh All Nodes", **WRITE})
@write_operation
async def refresh_all_nodes(blueprint: BlueprintRef) -> str:
    """Refresh all nodes in a Blueprint to update pin types and connections after modifications (e.g. after reparent_blueprint or connect_pins). Recompiles and saves the Blueprint."""
    body = {"blueprint": blueprint}
    return await _run_tool("refresh_all_nodes", nodes.REFRESH_ALL_NODES_ENDPOINT, body, nodes.format_refresh_all_nodes)


# ============================================================================
# Server tools
# ============================================================================

@mcp.tool(annotations={"title": "Server Status", **READ})
@read_only
async def server_status() -> str:
    """Check UE5 Blueprint server status. Starts the server if not running (blocks until ready)."""
    unavailable = await process_manager.ensure_engine()
    if unavailable:
        return unavailable
    try:
        data = await engine_client.get("/api/health")
    except (ConnectionError, TimeoutError) as e:
        return error_text(str(e))
    mode = data.get("mode") or (EDITOR_MODE if process_manager.editor_mode else COMMANDLET_MODE)
    map_count = data.get("mapCount")
    return (
        f"UE5 Blueprint server is running ({mode} mode).\n"
        f"Blueprints indexed: {data.get('blueprintCount')}\n"
        f"Maps indexed: {map_count if map_count is not None else '?'}"
    )


@mcp.tool(annotations={"title": "Shutdown Server", **DESTRUCTIVE})
@write_operation
async def shutdown_server() -> str:
    """Shut down the UE5 Blueprint server to free memory (~2-4 GB). The server will auto-restart on the next blueprint tool call. Use this when done with blueprint analysis. Cannot shut down the editor - only the standalone commandlet."""
    if process_manager.editor_mode:
        return "Connected to UE5 editor - cannot shut down the editor's MCP server. Close the editor to stop serving."

    if not process_manager.is_running and not process_manager.is_starting and not await engine_client.is_healthy():
        return "UE5 server is already stopped."

    await process_manager.graceful_shutdown()
    return "UE5 Blueprint server shut down. Memory freed. It will auto-restart on the next blueprint tool call."


# ============================================================================
# Resources
# ============================================================================

@mcp.resource(BLUEPRINT_LIST_URI, name="blueprint-list", description="List of all indexed Blueprints", mime_type="application/json")
async def blueprint_list() -> str:
    return await read_blueprint_list(engine_client)


@mcp.resource(WORKFLOW_RECIPES_URI, name="workflow-recipes", description="Workflow recipes for common Blueprint authoring tasks", mime_type="text/markdown")
def workflow_recipes() -> str:
    return WORKFLOW_RECIPES


def main():
    """Console entry point."""
    logger.info(f"Starting blueprint-mcp server (transport={settings.transport.value}, engine={engine_client.base_url})")

    run_kwargs = {"transport": settings.transport.value}
    if settings.transport != MCPTransport.stdio:
        # Only add host/port for non-stdio transports
        run_kwargs["host"] = settings.host
        run_kwargs["port"] = settings.port

    mcp.run(**run_kwargs)


if __name__ == "__main__":
    main()
