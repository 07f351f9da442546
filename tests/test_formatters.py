"""Tests for request bodies and the text rendering of engine responses."""

import json

from blueprint_mcp import dispatchers, graphs, nodes, reads
from blueprint_mcp.dispatchers import DispatcherParameter
from blueprint_mcp.formatting import flag_type, format_pin, js_str, or_empty, format_updated_state
from blueprint_mcp.nodes import NodeMove, PinConnection, PinDefault


# ============================================================================
# Shared helpers
# ============================================================================

def test_js_str():
    assert js_str(True) == "true"
    assert js_str(False) == "false"
    assert js_str(None) == "null"
    assert js_str(100.0) == "100"
    assert js_str(12.5) == "12.5"
    assert js_str("abc") == "abc"


def test_flag_type_marks_unresolved_types():
    assert flag_type("float") == "float"
    assert flag_type(None) == "⚠ <None>"
    assert flag_type("struct <unknown>") == "⚠ struct <unknown>"


def test_format_pin():
    assert format_pin({"name": "ReturnValue", "type": "bool", "direction": "Output"}) == "→ ReturnValue: bool"
    assert format_pin({"name": "Target", "type": "object", "subtype": "Actor", "direction": "Input"}) == "← Target: object (Actor)"


def test_or_empty():
    assert or_empty("") == "(empty)"
    assert or_empty(None) == "(empty)"
    assert or_empty("5") == "5"


def test_format_updated_state():
    lines = format_updated_state({"updatedState": {"nodeCount": 4, "pins": [{"name": "A", "type": "int", "direction": "Input"}]}})
    assert lines == ["", "Updated state:", "  Pins:", "    ← A: int", "  Nodes: 4"]
    assert format_updated_state({}) == []


# ============================================================================
# Graph tools
# ============================================================================

def test_format_create_blueprint():
    data = {
        "blueprintName": "BP_Door", "assetPath": "/Game/BP/BP_Door", "parentClass": "Actor",
        "blueprintType": "Normal", "graphs": ["EventGraph", "UserConstructionScript"], "saved": True
    }
    text = graphs.format_create_blueprint(data, {})
    assert text.startswith("Blueprint created successfully.\nName: BP_Door\n")
    assert "Graphs: EventGraph, UserConstructionScript" in text
    assert "Saved: true" in text
    assert 'get_blueprint(blueprint="BP_Door")' in text


def test_format_reparent_blueprint():
    data = {"blueprint": "BP_HUD", "oldParentClass": "HUD", "newParentClass": "WebUIHUD", "saved": False}
    assert graphs.format_reparent_blueprint(data, {}) == (
        "Blueprint reparented successfully.\n"
        "Blueprint: BP_HUD\n"
        "Old parent: HUD\n"
        "New parent: WebUIHUD\n"
        "Saved: false"
    )


def test_format_create_graph_function():
    body = {"blueprint": "BP_Door", "graphName": "Toggle", "graphType": "function"}
    data = {"blueprint": "BP_Door", "graphName": "Toggle", "graphType": "function", "saved": True}
    text = graphs.format_create_graph(data, body)
    assert "Graph: Toggle" in text
    assert "Node ID" not in text
    assert 'add_node(blueprint="BP_Door", graph="Toggle", ...)' in text


def test_format_create_graph_custom_event_points_at_event_graph():
    body = {"blueprint": "BP_Door", "graphName": "OnKnock", "graphType": "customEvent"}
    data = {"blueprint": "BP_Door", "graphName": "OnKnock", "graphType": "customEvent", "nodeId": "ABC-123", "saved": True}
    text = graphs.format_create_graph(data, body)
    assert "Node ID: ABC-123" in text
    assert 'add_node(blueprint="BP_Door", graph="EventGraph", ...)' in text


def test_format_rename_graph():
    data = {"blueprint": "BP_Door", "oldName": "Toggle", "newName": "ToggleOpen", "graphType": "function", "saved": True}
    text = graphs.format_rename_graph(data, {"blueprint": "BP_Door"})
    assert "Old name: Toggle\nNew name: ToggleOpen" in text
    assert 'graph="ToggleOpen"' in text


def test_format_delete_graph():
    data = {"blueprint": "BP_Door", "graphName": "Old", "graphType": "macro", "nodeCount": 3, "saved": True}
    text = graphs.format_delete_graph(data, {})
    assert "Nodes removed: 3" in text
    assert text.endswith("Saved: true")


# ============================================================================
# Event dispatchers
# ============================================================================

def test_build_add_event_dispatcher_body_without_parameters():
    body = dispatchers.build_add_event_dispatcher_body("BP_Door", "OnOpened", [])
    assert body == {"blueprint": "BP_Door", "dispatcherName": "OnOpened"}


def test_build_add_event_dispatcher_body_with_parameters():
    body = dispatchers.build_add_event_dispatcher_body(
        "BP_Door", "OnOpened", [DispatcherParameter(name="OpenedBy", type="object")]
    )
    assert body["parameters"] == [{"name": "OpenedBy", "type": "object"}]


def test_format_add_event_dispatcher():
    data = {"blueprint": "BP_Door", "dispatcherName": "OnOpened", "parameters": [{"name": "Amount", "type": "float"}], "saved": True}
    text = dispatchers.format_add_event_dispatcher(data, {"blueprint": "BP_Door", "dispatcherName": "OnOpened"})
    assert "Parameters:\n  Amount: float" in text
    assert 'list_event_dispatchers(blueprint="BP_Door")' in text
    assert "add_function_parameter" not in text


def test_format_add_event_dispatcher_no_parameters():
    data = {"blueprint": "BP_Door", "dispatcherName": "OnOpened"}
    text = dispatchers.format_add_event_dispatcher(data, {"blueprint": "BP_Door", "dispatcherName": "OnOpened"})
    assert "Parameters: (none)" in text
    assert "Saved" not in text


def test_format_list_event_dispatchers():
    data = {
        "blueprint": "BP_Door",
        "count": 2,
        "dispatchers": [
            {"name": "OnOpened", "parameters": [{"name": "By", "type": "object"}]},
            {"name": "OnBroken", "parameters": [{"name": "Data", "type": "<None>"}]},
        ],
    }
    assert dispatchers.format_list_event_dispatchers(data, {}) == (
        "Blueprint: BP_Door\n"
        "Event dispatchers: 2\n"
        "\n"
        "  OnOpened(By: object)\n"
        "  OnBroken(Data: ⚠ <None>)"
    )


def test_format_list_event_dispatchers_empty():
    text = dispatchers.format_list_event_dispatchers({"blueprint": "BP_Door", "dispatchers": []}, {})
    assert text == "Blueprint: BP_Door\nEvent dispatchers: 0"


# ============================================================================
# Node request bodies
# ============================================================================

def test_build_add_node_body_drops_unset_options():
    body = nodes.build_add_node_body("BP_Door", "EventGraph", "Branch", functionName=None, posX=0, posY=120.0, comment="")
    assert body == {"blueprint": "BP_Door", "graph": "EventGraph", "nodeType": "Branch", "posX": 0, "posY": 120.0}


def test_build_move_node_body_single():
    body = nodes.build_move_node_body("BP_Door", "N1", 10, 20)
    assert body == {"blueprint": "BP_Door", "nodeId": "N1", "x": 10, "y": 20}


def test_build_move_node_body_batch_takes_precedence():
    body = nodes.build_move_node_body("BP_Door", "N1", 10, 20, [NodeMove(nodeId="N2", x=1, y=2)])
    assert body == {"blueprint": "BP_Door", "nodes": [{"nodeId": "N2", "x": 1.0, "y": 2.0}]}


def test_build_batch_or_single_body():
    batch = [PinConnection(blueprint="BP", sourceNodeId="A", sourcePinName="then", targetNodeId="B", targetPinName="execute")]
    assert nodes.build_batch_or_single_body(batch, blueprint="ignored") == {"batch": [batch[0].model_dump()]}
    assert nodes.build_batch_or_single_body(None, blueprint="BP", nodeId=None) == {"blueprint": "BP"}


def test_build_batch_body_with_pin_defaults():
    batch = [PinDefault(blueprint="BP", nodeId="N", pinName="InString", value="")]
    assert nodes.build_batch_or_single_body(batch) == {"batch": [{"blueprint": "BP", "nodeId": "N", "pinName": "InString", "value": ""}]}


# ============================================================================
# Node formatters
# ============================================================================

def test_format_add_node():
    data = {
        "blueprint": "BP_Door", "graph": "EventGraph", "nodeId": "N1", "nodeClass": "K2Node_IfThenElse",
        "nodeTitle": "Branch", "saved": True,
        "node": {"pins": [{"name": "Condition", "type": "bool", "direction": "Input"}]},
    }
    text = nodes.format_add_node(data, {})
    assert text.startswith("Node added successfully.")
    assert "Node ID: N1" in text
    assert "Pins:\n  ← Condition: bool" in text


def test_format_add_node_already_exists():
    text = nodes.format_add_node({"alreadyExists": True, "blueprint": "BP", "graph": "EventGraph"}, {})
    assert text.startswith("Node already exists (returning existing).")


def test_format_delete_node():
    data = {"blueprint": "BP", "nodeId": "N1", "nodeTitle": "Branch", "disconnectedPins": 2, "saved": True}
    text = nodes.format_delete_node(data, {})
    assert "Disconnected pins: 2" in text
    assert "Node class" not in text


def test_format_move_node_single():
    data = {"blueprint": "BP", "nodeId": "N1", "oldX": 0, "oldY": 0, "newX": 100.0, "newY": 50, "saved": True}
    assert nodes.format_move_node(data, {}) == (
        "Node repositioned successfully.\n"
        "Blueprint: BP\n"
        "Node: N1\n"
        "Position: (0,0) -> (100,50)\n"
        "Saved: true"
    )


def test_format_move_node_batch_with_failures():
    data = {
        "blueprint": "BP", "movedCount": 1, "totalRequested": 2, "saved": True,
        "results": [
            {"nodeId": "N1", "oldX": 0, "oldY": 0, "newX": 10, "newY": 10},
            {"nodeId": "N2", "error": "Node not found"},
        ],
    }
    text = nodes.format_move_node(data, {})
    assert text.startswith("Batch move: 1/2 node(s) repositioned.")
    assert "  OK N1: (0,0) -> (10,10)" in text
    assert "  FAILED N2: Node not found" in text


def test_format_move_node_empty_batch():
    text = nodes.format_move_node({"blueprint": "BP", "movedCount": 0, "totalRequested": 0, "results": []}, {})
    assert text.startswith("Batch move: 0/0")


def test_format_duplicate_nodes():
    data = {
        "blueprint": "BP", "graph": "EventGraph", "duplicatedCount": 1, "saved": True,
        "nodes": [{"sourceNodeId": "N1", "newNodeId": "N9", "posX": 50, "posY": 50}],
        "notFound": ["N7"],
    }
    text = nodes.format_duplicate_nodes(data, {})
    assert "  N1 -> N9 at (50,50)" in text
    assert "Not found: N7" in text
    assert "connect_pins" in text


def test_format_connect_pins_single():
    data = {"success": True, "blueprint": "BP", "sourcePinType": "exec", "targetPinType": "object", "targetPinSubtype": "Actor", "saved": True}
    text = nodes.format_connect_pins(data, {})
    assert "Connection succeeded." in text
    assert "Target pin type: object (Actor)" in text


def test_format_connect_pins_batch():
    data = {"results": [{"sourcePinName": "then", "targetPinName": "execute"}, {"error": "Pin 'x' not found"}]}
    text = nodes.format_connect_pins(data, {})
    assert text.startswith("Batch connect: 2 operation(s)")
    assert "  OK: then → execute" in text
    assert "  FAILED: Pin 'x' not found" in text


def test_format_connect_pins_error_lists_available_pins():
    data = {"error": "Pin 'Foo' not found", "availablePins": ["execute", "Condition"], "sourcePinType": "bool"}
    assert nodes.format_connect_pins_error(data, {}) == (
        "Error: Pin 'Foo' not found\n"
        "Available pins: execute, Condition\n"
        "Source pin type: bool"
    )


def test_format_connect_pins_error_with_success_renders_success():
    data = {"error": "warning only", "success": True, "blueprint": "BP", "sourcePinType": "exec", "targetPinType": "exec"}
    assert nodes.format_connect_pins_error(data, {}).startswith("Connection succeeded.")


def test_format_disconnect_pin():
    text = nodes.format_disconnect_pin({"disconnectedCount": 3, "blueprint": "BP", "saved": True}, {})
    assert text == "Disconnected 3 link(s).\nBlueprint: BP\nSaved: true"


def test_format_set_pin_default_single():
    data = {"blueprint": "BP", "nodeId": "N1", "pinName": "InString", "oldValue": "", "newValue": "Hello", "saved": True}
    text = nodes.format_set_pin_default(data, {})
    assert "Old value: (empty)\nNew value: Hello" in text


def test_format_set_pin_default_batch():
    data = {
        "successCount": 1, "totalCount": 2, "saved": True,
        "results": [
            {"nodeId": "N1", "pinName": "A", "oldValue": "0", "newValue": "1"},
            {"pinName": "B", "error": "Node not found"},
        ],
    }
    text = nodes.format_set_pin_default(data, {})
    assert text.startswith("Batch set_pin_default: 1/2 succeeded.")
    assert "  OK N1.A: 0 -> 1" in text
    assert "  FAILED ?.B: Node not found" in text


def test_format_node_comments():
    text = nodes.format_get_node_comment({"blueprint": "BP", "nodeId": "N1", "comment": "", "commentBubbleVisible": False}, {})
    assert text == "Blueprint: BP\nNode: N1\nComment: (empty)\nComment bubble visible: false"

    text = nodes.format_set_node_comment({"blueprint": "BP", "nodeId": "N1", "oldComment": "", "newComment": "Check", "saved": True}, {})
    assert "Old comment: (empty)\nNew comment: Check" in text


def test_format_set_blueprint_default():
    data = {"blueprint": "BP_HUD", "property": "WidgetClass", "propertyType": "class", "oldValue": None, "newValue": "WBP_Main", "saved": True}
    text = nodes.format_set_blueprint_default(data, {})
    assert "Property: WidgetClass (class)" in text
    assert "Old value: (empty)" in text


def test_format_refresh_all_nodes():
    text = nodes.format_refresh_all_nodes(
        {"success": False, "blueprint": "BP", "graphCount": 2, "nodeCount": 14, "saved": True, "warning": "Compile errors"}, {}
    )
    assert text == (
        "Refresh completed with issues.\n"
        "Blueprint: BP\n"
        "Graphs: 2, Nodes: 14\n"
        "Saved: true\n"
        "Warning: Compile errors"
    )


# ============================================================================
# Read tools
# ============================================================================

def test_build_read_queries():
    assert reads.build_get_blueprint_query("BP_Door") == {"name": "BP_Door"}
    assert reads.build_get_graph_query("BP_Door", "EventGraph") == {"name": "BP_Door", "graph": "EventGraph"}


def test_format_json_passes_engine_data_through():
    data = {"name": "BP_Door", "graphs": [{"name": "EventGraph", "nodeCount": 3}]}
    assert json.loads(reads.format_json(data, {})) == data


def test_format_graph_error_lists_available_graphs():
    data = {"error": "Graph 'Tick' not found", "availableGraphs": ["EventGraph", "Toggle"]}
    assert reads.format_graph_error(data, {}) == "Error: Graph 'Tick' not found\nAvailable: EventGraph, Toggle"


def test_format_graph_error_without_available_graphs():
    assert reads.format_graph_error({"error": "Blueprint 'BP_X' not found"}, {}) == "Error: Blueprint 'BP_X' not found"
