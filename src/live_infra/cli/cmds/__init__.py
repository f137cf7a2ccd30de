from .audio_cmds import register as register_audio
from .live_cmds import register as register_live
from .search_cmds import register as register_search

__all__ = [
    "register_audio",
    "register_live",
    "register_search",
]
