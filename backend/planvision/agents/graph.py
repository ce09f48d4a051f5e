"""
LangGraph Workflow

Edit workflow for one room:
prepare → inpaint → (adopt | composite) → Output

Errors raised by any node propagate to the caller unchanged; the image
session only commits the output once the whole graph has finished.
"""

from typing import Literal

from langgraph.graph import StateGraph, END

from planvision.agents.region_editor import RegionEditor
from planvision.core.compositor import Compositor
from planvision.models.edit import EditRequest
from planvision.models.state import EditState, create_initial_state


# ============ Router Functions ============

def choose_merge(state: EditState) -> Literal["adopt", "composite"]:
    """
    Adopt the service's full image when it sent one, otherwise composite
    the crop locally.
    """
    result = state.get("result")
    if result is not None and result.full_image_url:
        return "adopt"
    return "composite"


# ============ Graph Definition ============

def create_edit_graph(editor: RegionEditor, compositor: Compositor) -> StateGraph:
    """
    Create the LangGraph workflow for a room edit.

    Flow:
        START → prepare → inpaint → adopt ─────┐
                                  ↘ composite → END
    """

    async def prepare_node(state: EditState) -> dict:
        prepared = await editor.prepare(state["request"], state["current_image"])
        return {"prepared": prepared}

    async def inpaint_node(state: EditState) -> dict:
        result = await editor.submit(state["prepared"])
        return {"result": result}

    def adopt_node(state: EditState) -> dict:
        return {
            "output_image": state["result"].full_image_url,
            "composited_locally": False,
        }

    async def composite_node(state: EditState) -> dict:
        outcome = await compositor.apply(state["result"], state["prepared"], state["current_image"])
        return {
            "output_image": outcome.image,
            "composited_locally": outcome.composited_locally,
        }

    graph = StateGraph(EditState)

    graph.add_node("prepare", prepare_node)
    graph.add_node("inpaint", inpaint_node)
    graph.add_node("adopt", adopt_node)
    graph.add_node("composite", composite_node)

    graph.set_entry_point("prepare")
    graph.add_edge("prepare", "inpaint")
    graph.add_conditional_edges(
        "inpaint",
        choose_merge,
        {
            "adopt": "adopt",
            "composite": "composite"
        }
    )
    graph.add_edge("adopt", END)
    graph.add_edge("composite", END)

    return graph


def compile_graph(editor: RegionEditor, compositor: Compositor):
    """Compile the edit graph for execution."""
    return create_edit_graph(editor, compositor).compile()


# ============ Execution Helpers ============

async def run_edit(
    request: EditRequest,
    current_image: str,
    editor: RegionEditor,
    compositor: Compositor,
) -> EditState:
    """
    Run the full edit workflow.

    Returns:
        Final EditState; `output_image` holds the next image state
    """
    app = compile_graph(editor, compositor)
    return await app.ainvoke(create_initial_state(request, current_image))
