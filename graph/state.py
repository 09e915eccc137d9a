"""
LangGraph state: messages plus routing flags set by the moderation and planner nodes.
"""
from typing import Annotated, Optional, Sequence, TypedDict

from langchain_core.messages import BaseMessage
from langgraph.graph.message import add_messages


class GraphState(TypedDict):
    """State passed between nodes. messages is the conversation; flags drive conditional edges."""
    messages: Annotated[Sequence[BaseMessage], add_messages]
    is_flagged: Optional[bool]
    is_conversational: Optional[bool]
    context: Optional[str]
