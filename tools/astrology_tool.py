"""
Astrology tool: the chart pipeline exposed to the LLM as one call that always returns.
Every outcome (chart, unknown place, service down, unexpected crash) becomes a
JSON-serializable ToolResult the model can narrate. Missing credentials are the only
error raised, and only when the tool is built (startup).
"""
import json
import logging
from typing import Any, Mapping, Optional, Union

from langchain_core.tools import tool

from tools.base import BirthQuery, ChartSuccess, LocationNotFound, UpstreamFailure
from tools.orchestrator import ChartQueryOrchestrator

logger = logging.getLogger(__name__)

DEGRADED_MESSAGE = (
    "The external astrology service is temporarily unavailable. Please answer using general "
    "Vedic astrology principles only, without external API data."
)
NO_DATA_MESSAGE = "Astrology service returned no data. Please answer using general Vedic astrology knowledge only."
LOCATION_MESSAGE = (
    "Could not find the birth place \"{place}\". Ask the user for the nearest major city "
    "(city + country), and meanwhile answer using general Vedic astrology knowledge only."
)
UPSTREAM_MESSAGE = (
    "The astrology computation service is temporarily unavailable. Do not invent chart data; "
    "answer using general Vedic astrology principles and tell the user detailed chart data "
    "could not be fetched right now."
)
SUCCESS_MESSAGE = (
    "Explain this {kind} reading for {name} in simple, conversational language, focusing on "
    "{focus_area}. Never dump raw JSON."
)


def degraded_result(message: str = DEGRADED_MESSAGE) -> dict[str, Any]:
    return {"ok": False, "kind": "degraded", "message": message}


def to_tool_result(result: Any) -> dict[str, Any]:
    """Map an AstrologyResult variant to the dict handed to the model."""
    if isinstance(result, ChartSuccess):
        return {
            "ok": True,
            "kind": "success",
            "query_kind": result.kind.value,
            "name": result.name,
            "focus_area": result.focus_area,
            "location": result.location.as_dict(),
            "data": result.payload,
            "message": SUCCESS_MESSAGE.format(
                kind=result.kind.value, name=result.name, focus_area=result.focus_area
            ),
        }
    if isinstance(result, LocationNotFound):
        return {
            "ok": False,
            "kind": "location_not_found",
            "place": result.raw_place_input,
            "message": LOCATION_MESSAGE.format(place=result.raw_place_input),
        }
    if isinstance(result, UpstreamFailure):
        return {
            "ok": False,
            "kind": "upstream_failure",
            "stage": result.stage.value,
            "message": UPSTREAM_MESSAGE,
        }
    if result is None:
        return degraded_result(NO_DATA_MESSAGE)
    raise TypeError(f"Unexpected astrology result: {type(result).__name__}")


class ResilientToolAdapter:
    """Error boundary around ChartQueryOrchestrator.run. invoke() never raises and never returns None."""

    def __init__(self, orchestrator: ChartQueryOrchestrator):
        self.orchestrator = orchestrator

    def invoke(self, query: Union[BirthQuery, Mapping[str, Any]]) -> dict[str, Any]:
        try:
            if not isinstance(query, BirthQuery):
                query = BirthQuery.model_validate(dict(query))
            return to_tool_result(self.orchestrator.run(query))
        except Exception as e:
            logger.error("Astrology tool failed: %s", str(e)[:300], exc_info=True)
            return degraded_result()


def build_astrology_adapter(settings=None) -> ResilientToolAdapter:
    """Wire the pipeline from settings. Raises ConfigurationError if AstrologyAPI credentials are missing."""
    if settings is None:
        from app.config import get_settings
        settings = get_settings()
    return ResilientToolAdapter(ChartQueryOrchestrator.from_settings(settings))


# Shared adapter for the app and the executor; the pipeline holds no per-call state
_adapter: Optional[ResilientToolAdapter] = None


def get_astrology_adapter() -> ResilientToolAdapter:
    global _adapter
    if _adapter is None:
        _adapter = build_astrology_adapter()
    return _adapter


def get_astrology_tool(adapter: Optional[ResilientToolAdapter] = None):
    """Build the LangChain tool bound to an adapter (the shared one when not given)."""
    if adapter is None:
        adapter = get_astrology_adapter()

    @tool(args_schema=BirthQuery)
    def astrology_tool(
        name: str,
        day: int,
        month: int,
        year: int,
        hour: int,
        minute: int,
        place: str,
        query_kind: str = "chart-details",
        focus_area: str = "general",
    ) -> str:
        """
        Use this when the user gives their name and birth details (date, time, place) and wants
        an Indian astrology reading about their life, career, love, or health.
        Use query_kind='daily-prediction' for questions about today or this week.
        Returns JSON; if ok is false, follow its message and answer from general knowledge.
        """
        result = adapter.invoke(
            {
                "name": name,
                "day": day,
                "month": month,
                "year": year,
                "hour": hour,
                "minute": minute,
                "place": place,
                "query_kind": query_kind,
                "focus_area": focus_area,
            }
        )
        return json.dumps(result, default=str, ensure_ascii=False)

    return astrology_tool
