"""Built-in source catalog and the pure list operations around it.

Persistence of custom sources and disabled APIs belongs to the caller; these
helpers take snapshots and return new values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from metadata.types import HealthCheckResult, SourceEndpoint

_MIRROR = "https://cfkua.wokaotianshi.eu.org/"

DEFAULT_SOURCES: tuple[SourceEndpoint, ...] = tuple(
    SourceEndpoint(name=name, api_base_url=f"{_MIRROR}{api}")
    for name, api in (
        ("茅台资源站采集接口", "https://caiji.maotaizy.cc/api.php/provide/vod/at/xml"),
        ("旺旺资源网采集接口", "https://api.wwzy.tv/api.php/provide/vod/at/xml"),
        ("如意资源网采集接口", "https://cj.rycjapi.com/api.php/provide/vod/at/xml"),
        ("红牛云播资源采集地址", "https://www.hongniuzy2.com/api.php/provide/vod/at/xml"),
        ("光速资源站采集接口地址", "https://api.guangsuapi.com/api.php/provide/vod/at/xml"),
        ("速播资源采集规则地址", "https://subocj.com/api.php/provide/vod/at/xml"),
        ("豪华资源网采集接口地址", "https://hhzyapi.com/api.php/provide/vod/at/xml"),
        ("虎牙资源采集网采集接口", "https://www.huyaapi.com/api.php/provide/vod/at/xml"),
        ("爱奇艺资源站采集接口", "https://iqiyizyapi.com/api.php/provide/vod/at/xml"),
        ("豆瓣资源采集站采集接口大全", "https://caiji.dbzy5.com/api.php/provide/vod/at/xml"),
        ("魔都动漫资源采集网采集接口", "https://www.mdzyapi.com/api.php/provide/vod/at/xml"),
        ("ikun资源网采集接口", "https://ikunzyapi.com/api.php/provide/vod/at/xml"),
        ("OK资源采集网采集接口", "http://api.okzyw.net/api.php/provide/vod/at/xml"),
        ("U酷资源网采集地址", "https://api.ukuapi88.com/api.php/provide/vod/at/xml"),
        ("量子资源网资源采集接口", "https://cj.lziapi.com/api.php/provide/vod/at/xml"),
        ("最大资源网采集接口", "https://api.zuidapi.com/api.php/provide/vod/at/xml"),
        ("天涯影视资源网采集接口", "https://tyyszyapi.com/api.php/provide/vod/at/xml"),
        ("电影天堂采集综合资源接口", "http://caiji.dyttzyapi.com/api.php/provide/vod/at/xml"),
        ("百度资源采集接口", "https://api.apibdzy.com/api.php/provide/vod/at/xml"),
        ("百万资源网采集接口", "https://api.bwzyz.com/api.php/provide/vod/at/xml"),
        ("鸭鸭（丫丫）资源网采集接口", "https://cj.yayazy.net/api.php/provide/vod/at/xml"),
        ("牛牛资源网采集接口", "https://api.niuniuzy.me/api.php/provide/vod/at/xml"),
        ("360资源站采集接口", "https://360zyzz.com/api.php/provide/vod/at/xml"),
        ("卧龙影视资源采集站采集接口", "https://collect.wolongzy.cc/api.php/provide/vod/at/xml"),
        ("极速资源网采集接口", "https://jszyapi.com/api.php/provide/vod/at/xml"),
        ("暴风资源网采集接口", "https://bfzyapi.com/api.php/provide/vod/at/xml"),
        ("非凡资源网采集接口", "http://api.ffzyapi.com/api.php/provide/vod/at/xml"),
        ("樱花资源网采集接口", "https://m3u8.apiyhzy.com/api.php/provide/vod/at/xml"),
        ("无尽资源网采集接口", "https://api.wujinapi.me/api.php/provide/vod/at/xml"),
    )
)


@dataclass(frozen=True)
class CleanupPlan:
    custom_sources: list[SourceEndpoint]
    disabled_apis: list[str]


def all_sources(defaults: Iterable[SourceEndpoint], custom: Iterable[SourceEndpoint]) -> list[SourceEndpoint]:
    """Built-ins followed by custom sources, duplicates included."""
    return [*defaults, *(_as_custom(source) for source in custom)]


def active_sources(
    defaults: Iterable[SourceEndpoint],
    custom: Iterable[SourceEndpoint],
    disabled_apis: Iterable[str],
) -> list[SourceEndpoint]:
    """Usable sources: disabled APIs dropped, first occurrence of each API kept."""
    disabled = set(disabled_apis)
    seen: set[str] = set()
    out = []
    for source in all_sources(defaults, custom):
        if source.is_disabled or source.api_base_url in disabled:
            continue
        if source.api_base_url in seen:
            continue
        seen.add(source.api_base_url)
        out.append(source)
    return out


def plan_cleanup(every_source: Iterable[SourceEndpoint], result: HealthCheckResult) -> CleanupPlan:
    """Turn a scan result into the lists the persistence layer should store.

    Healthy custom sources are kept, dead or duplicate ones dropped; every
    built-in whose API is not in the working set is disabled. A clean scan
    therefore yields an empty disabled list, re-enabling recovered built-ins.
    """
    working_apis = {source.api_base_url for source in result.working_sources}
    custom = [source for source in result.working_sources if source.is_custom]
    disabled: list[str] = []
    for source in every_source:
        if source.is_custom or source.api_base_url in working_apis:
            continue
        if source.api_base_url not in disabled:
            disabled.append(source.api_base_url)
    return CleanupPlan(custom_sources=custom, disabled_apis=disabled)


def _as_custom(source: SourceEndpoint) -> SourceEndpoint:
    if source.is_custom:
        return source
    return SourceEndpoint(
        name=source.name,
        api_base_url=source.api_base_url,
        is_custom=True,
        is_disabled=source.is_disabled,
    )
