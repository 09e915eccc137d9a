"""
LangGraph StateGraph: User -> Moderation -> (Denied | Planner) -> (Conversation | Executor) -> Memory -> END.
Compiled graph is the main entry for the backend.
"""
from langgraph.graph import StateGraph, END
from langgraph.checkpoint.memory import MemorySaver

from graph.state import GraphState
from graph.nodes import (
    user_node,
    moderation_node,
    denied_node,
    planner_node,
    conversation_node,
    executor_node,
    memory_node,
)


def route_after_moderation(state: GraphState) -> str:
    """Flagged messages never reach the planner or any tool."""
    return "denied" if state.get("is_flagged") else "planner"


def route_after_planner(state: GraphState) -> str:
    """Social queries get canned replies; everything else goes to the tool-calling executor."""
    return "conversation" if state.get("is_conversational") else "executor"


def build_graph():
    builder = StateGraph(GraphState)

    builder.add_node("user", user_node)
    builder.add_node("moderation", moderation_node)
    builder.add_node("denied", denied_node)
    builder.add_node("planner", planner_node)
    builder.add_node("conversation", conversation_node)
    builder.add_node("executor", executor_node)
    builder.add_node("memory", memory_node)

    builder.set_entry_point("user")
    builder.add_edge("user", "moderation")
    builder.add_conditional_edges(
        "moderation",
        route_after_moderation,
        {"denied": "denied", "planner": "planner"},
    )
    builder.add_conditional_edges(
        "planner",
        route_after_planner,
        {"conversation": "conversation", "executor": "executor"},
    )
    builder.add_edge("denied", "memory")
    builder.add_edge("conversation", "memory")
    builder.add_edge("executor", "memory")
    builder.add_edge("memory", END)

    memory = MemorySaver()
    return builder.compile(checkpointer=memory)


# Singleton compiled graph for the app
_graph = None


def get_graph():
    global _graph
    if _graph is None:
        _graph = build_graph()
    return _graph
