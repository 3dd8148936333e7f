"""Service layer - query lifecycle and search orchestration."""

from launcher_search.service_layer.query_session import GenerationClock, QuerySession, SearchPipeline, SessionState
from launcher_search.service_layer.search_service import SearchService


__all__ = [
    "GenerationClock",
    "QuerySession",
    "SearchPipeline",
    "SearchService",
    "SessionState",
]
