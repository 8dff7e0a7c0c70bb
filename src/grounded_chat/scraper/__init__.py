"""On-demand page retrieval for grounding chat answers.

Sub-modules:
- ``config`` constants and tuning parameters
- ``url_detector`` URL detection in free-form chat text
- ``http_fetcher`` async httpx-based page fetcher
- ``content_extractor`` BeautifulSoup-based bounded text extraction
- ``cache_store`` key-value store protocol and its Redis adapter
- ``cache`` validated, size-guarded scrape result cache
- ``service`` ``ScrapeService.resolve()``: cache, fetch, extract, persist
"""
