from .catalog import CMSCatalogClient, build_api_url
from .douban import DoubanRecommendClient
from .health import SourceHealthScanner
from .search_engine import AggregateSearchEngine, SearchSession
from .sources import DEFAULT_SOURCES, CleanupPlan, active_sources, plan_cleanup

__all__ = [
    "AggregateSearchEngine",
    "CMSCatalogClient",
    "CleanupPlan",
    "DoubanRecommendClient",
    "DEFAULT_SOURCES",
    "SearchSession",
    "SourceHealthScanner",
    "active_sources",
    "build_api_url",
    "plan_cleanup",
]
