# Content fetching
from .fetchers import (
    ApifyFetcher,
    BaseFetcher,
    FetchOutcome,
    FirecrawlFetcher,
    HttpFetcher,
    get_fetcher,
)
from .html_text import html_to_content

__all__ = [
    "ApifyFetcher",
    "BaseFetcher",
    "FetchOutcome",
    "FirecrawlFetcher",
    "HttpFetcher",
    "get_fetcher",
    "html_to_content",
]
