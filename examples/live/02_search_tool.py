#!/usr/bin/env python
"""Tavily Search Tool Example.

This example demonstrates:
- Storing the Tavily API key
- The function declaration offered to a model
- Running a search and printing the answer

Pass the key once with TAVILY_API_KEY; it is kept in the local key store.
"""

import asyncio
import json
import os

from live_infra.errors import SearchError
from live_infra.tools import TavilySearchTool


async def main():
    tool = TavilySearchTool()
    if os.environ.get("TAVILY_API_KEY"):
        tool.set_api_key(os.environ["TAVILY_API_KEY"])

    print("Declaration:")
    print(json.dumps(tool.declaration(), indent=2))

    try:
        result = await tool.search("latest stable Python release", max_results=3)
    except SearchError as e:
        print(f"\n  ⚠ {e}")
        return

    print(f"\nAnswer: {result['answer']}")
    for item in result["results"]:
        print(f"  - {item['title']} ({item['url']})")


if __name__ == "__main__":
    asyncio.run(main())
