from .merge import merge_same_title
from .play_links import Episode, parse_play_url

__all__ = ["Episode", "merge_same_title", "parse_play_url"]
