"""Tools available alongside live sessions."""

from live_infra.tools.keystore import KeyStore
from live_infra.tools.search import TavilySearchTool

__all__ = ["KeyStore", "TavilySearchTool"]
