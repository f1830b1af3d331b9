"""Parser for the CMS play-link micro-grammar.

    groups  := group ("$$$" group)*
    group   := episode ("#" episode)*
    episode := [name "$"] url

Each group is one player/quality line-up. Within an episode the first ``$``
splits the display name from the URL; an episode without a name gets
``DEFAULT_EPISODE_NAME``. Only http(s) URLs survive parsing.

For well-formed input (named episodes, http(s) URLs free of ``#`` and ``$``)
``parse_play_groups(format_play_groups(groups)) == groups``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

GROUP_SEPARATOR = "$$$"
EPISODE_SEPARATOR = "#"
NAME_SEPARATOR = "$"
DEFAULT_EPISODE_NAME = "正片"


@dataclass(frozen=True)
class Episode:
    name: str
    url: str


def parse_episode(raw: str) -> Episode | None:
    trimmed = (raw or "").strip()
    if not trimmed:
        return None
    name, sep, url = trimmed.partition(NAME_SEPARATOR)
    if not sep:
        name, url = DEFAULT_EPISODE_NAME, trimmed
    url = url.strip()
    if url.startswith("//"):
        url = "https:" + url
    if not url.startswith(("http://", "https://")):
        return None
    return Episode(name=name.strip(), url=url)


def parse_play_groups(raw: str | None) -> list[list[Episode]]:
    if not raw:
        return []
    groups = []
    for raw_group in raw.split(GROUP_SEPARATOR):
        episodes = [parse_episode(part) for part in raw_group.split(EPISODE_SEPARATOR)]
        groups.append([episode for episode in episodes if episode is not None])
    return groups


def select_playable_group(groups: Iterable[list[Episode]]) -> list[Episode]:
    """Prefer an HLS group, then MP4, then anything non-empty."""
    groups = list(groups)
    for marker in (".m3u8", ".mp4"):
        for group in groups:
            if any(marker in episode.url for episode in group):
                return group
    for group in groups:
        if group:
            return group
    return []


def parse_play_url(raw: str | None) -> list[Episode]:
    return select_playable_group(parse_play_groups(raw))


def format_play_groups(groups: Iterable[Iterable[Episode]]) -> str:
    return GROUP_SEPARATOR.join(
        EPISODE_SEPARATOR.join(f"{episode.name}{NAME_SEPARATOR}{episode.url}" for episode in group)
        for group in groups
    )
