"""MCP resources: the Blueprint list and authoring workflow recipes."""

import json
import logging

from .client.engine_client import UnrealEngineClient

logger = logging.getLogger(__name__)

BLUEPRINT_LIST_URI = "blueprint:///list"
WORKFLOW_RECIPES_URI = "blueprint:///recipes"

LIST_ENDPOINT = "/api/list"


async def read_blueprint_list(client: UnrealEngineClient) -> str:
    """JSON array of Blueprints the engine has indexed; ``[]`` when it is not reachable.

    Reading a resource never spawns a commandlet.
    """
    if not await client.is_healthy():
        return "[]"
    try:
        data = await client.get(LIST_ENDPOINT)
    except (ConnectionError, TimeoutError) as e:
        logger.warning(f"Could not read Blueprint list: {str(e)}")
        return "[]"
    return json.dumps(data.get("blueprints", []), indent=2)


WORKFLOW_RECIPES = """# Blueprint MCP Workflow Recipes

## Recipe 1: New Actor Blueprint with a function

1. **Create the Blueprint**:
   ```
   create_blueprint(blueprintName="BP_Door", packagePath="/Game/Blueprints", parentClass="Actor")
   ```

2. **Add a function graph**:
   ```
   create_graph(blueprint="BP_Door", graphName="ToggleOpen", graphType="function")
   ```

3. **Add logic** to the new graph and lay it out:
   ```
   add_node(blueprint="BP_Door", graph="ToggleOpen", nodeType="Branch", posX=300, posY=0)
   add_node(blueprint="BP_Door", graph="ToggleOpen", nodeType="CallFunction", className="KismetSystemLibrary", functionName="PrintString", posX=600, posY=0)
   connect_pins(blueprint="BP_Door", sourceNodeId="<branch>", sourcePinName="then", targetNodeId="<print>", targetPinName="execute")
   set_pin_default(blueprint="BP_Door", nodeId="<print>", pinName="InString", value="Door toggled")
   ```

4. **Refresh** so pin types settle and the Blueprint compiles:
   ```
   refresh_all_nodes(blueprint="BP_Door")
   ```

### Tips
- Node IDs come back from `add_node`; keep them for `connect_pins` and `move_node`
- `move_node` accepts a `nodes` array to reposition many nodes in one call

---

## Recipe 2: Event dispatcher with typed parameters

1. **Create the dispatcher**:
   ```
   add_event_dispatcher(blueprint="BP_Door", dispatcherName="OnOpened", parameters=[{"name": "OpenedBy", "type": "object"}])
   ```

2. **Verify** the signature:
   ```
   list_event_dispatchers(blueprint="BP_Door")
   ```

3. **Raise it** from a custom event:
   ```
   create_graph(blueprint="BP_Door", graphName="NotifyOpened", graphType="customEvent")
   add_node(blueprint="BP_Door", graph="EventGraph", nodeType="CallFunction", functionName="OnOpened")
   ```

---

## Recipe 3: Reorganising graphs

1. **Rename** a function graph (EventGraph cannot be renamed):
   ```
   rename_graph(blueprint="BP_Door", graphName="ToggleOpen", newName="Toggle")
   ```

2. **Delete** an obsolete graph (all of its nodes are removed):
   ```
   delete_graph(blueprint="BP_Door", graphName="OldHelper")
   ```

3. **Reparent** the Blueprint onto a C++ base class:
   ```
   reparent_blueprint(blueprint="BP_Door", newParentClass="DoorBase")
   refresh_all_nodes(blueprint="BP_Door")
   ```

### Tips
- Errors such as "name already exists" or "node not found" come straight from the engine
- Batch tools (`move_node`, `connect_pins`, `set_pin_default`) report failures per item
"""
