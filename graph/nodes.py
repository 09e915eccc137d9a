"""
LangGraph nodes: UserNode, ModerationNode, DeniedNode, PlannerNode, ConversationNode,
ExecutorNode and MemoryNode. The executor is the only node that calls the LLM; the astrology
tool it binds always returns a ToolResult, so a tool failure never stalls the turn.
"""
import time
from typing import Any, Optional

import structlog
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from langgraph.prebuilt import create_react_agent

from app.config import get_settings
from graph.moderation import DENIAL_MESSAGE, ModerationGate
from graph.persona import detect_conversation_type, get_conversational_response, get_system_prompt
from graph.state import GraphState

log = structlog.get_logger()

_moderation_gate: Optional[ModerationGate] = None


def _get_llm():
    """Chat model from settings (OpenAI or Azure)."""
    settings = get_settings()
    if settings.azure_openai_api_key:
        from langchain_openai import AzureChatOpenAI
        return AzureChatOpenAI(
            azure_endpoint=settings.azure_openai_endpoint or "",
            api_key=settings.azure_openai_api_key,
            deployment_name=settings.azure_openai_deployment or "gpt-4o-mini",
            api_version="2024-02-15-preview",
            temperature=0.7,
        )
    return ChatOpenAI(
        model=settings.openai_chat_model,
        api_key=settings.openai_api_key,
        temperature=0.7,
    )


def get_moderation_gate() -> ModerationGate:
    global _moderation_gate
    if _moderation_gate is None:
        _moderation_gate = ModerationGate(model=get_settings().openai_moderation_model)
    return _moderation_gate


def _last_user_text(state: GraphState) -> str:
    messages = state.get("messages") or []
    last = next((m for m in reversed(messages) if isinstance(m, HumanMessage)), None)
    content = getattr(last, "content", None) if last else None
    if isinstance(content, list):
        content = "".join(part.get("text", "") for part in content if isinstance(part, dict))
    return (content or "").strip()


def user_node(state: GraphState) -> dict[str, Any]:
    """UserNode: graph entry. Resets per-turn routing flags."""
    return {"is_flagged": False, "is_conversational": False}


def moderation_node(state: GraphState) -> dict[str, Any]:
    """ModerationNode: runs the moderation gate on the latest user message before anything else."""
    if not get_settings().moderation_enabled:
        return {"is_flagged": False}
    query = _last_user_text(state)
    start = time.perf_counter()
    result = get_moderation_gate().check(query)
    log.info(
        "moderation_node",
        flagged=result.flagged,
        categories=result.categories,
        duration_sec=round(time.perf_counter() - start, 3),
    )
    return {"is_flagged": result.flagged}


def denied_node(state: GraphState) -> dict[str, Any]:
    """DeniedNode: flagged message; reply with the denial text and never invoke tools."""
    return {"messages": [AIMessage(content=DENIAL_MESSAGE)]}


def planner_node(state: GraphState) -> dict[str, Any]:
    """PlannerNode: social queries go to canned replies (no LLM); everything else to the executor."""
    query = _last_user_text(state)[:500]
    conversation_type = detect_conversation_type(query) if query else None
    log.info("planner_node", is_conversational=bool(conversation_type), conversation_type=conversation_type)
    return {"is_conversational": bool(conversation_type)}


def conversation_node(state: GraphState) -> dict[str, Any]:
    """ConversationNode: consistent ZodiAI identity for greetings, name, capabilities and thanks."""
    query = _last_user_text(state)
    conversation_type = detect_conversation_type(query)
    response = get_conversational_response(conversation_type, query)
    log.info("conversation_node", conversation_type=conversation_type)
    return {"messages": [AIMessage(content=response)]}


def _build_tools():
    """LangChain tools for the executor, bound to the shared astrology adapter."""
    from tools.astrology_tool import get_astrology_adapter, get_astrology_tool
    return [get_astrology_tool(get_astrology_adapter())]


def executor_node(state: GraphState) -> dict[str, Any]:
    """
    ExecutorNode: ReAct agent with the astrology tool and the ZodiAI system prompt.
    Returns only the messages produced in this turn.
    """
    tools = _build_tools()
    llm = _get_llm()
    agent = create_react_agent(llm, tools)

    messages = list(state.get("messages") or [])
    messages_with_system = [SystemMessage(content=get_system_prompt())] + messages

    start = time.perf_counter()
    result = agent.invoke({"messages": messages_with_system})
    log.info("executor_node", duration_sec=round(time.perf_counter() - start, 3))
    new_messages = result.get("messages", [])

    num_original = len(messages_with_system)
    if len(new_messages) > num_original:
        return {"messages": new_messages[num_original:]}
    return {"messages": [m for m in new_messages if isinstance(m, AIMessage)][-1:] if new_messages else []}


def memory_node(state: GraphState) -> dict[str, Any]:
    """MemoryNode: records how many messages the thread carries (last 20 kept as context)."""
    messages = state.get("messages") or []
    context_messages = messages[-20:]
    return {"context": f"{len(context_messages)} messages in context"}
