"""
Source adapters, in resolver priority order.

  ranking    DirectRankingAdapter, one request per URL-shape candidate
  cursor     CursorRankingAdapter, follows ``cursor``/``cursor_string`` pages
  scrape     ScrapeAdapter, public HTML pages run through ``extractors``
"""
