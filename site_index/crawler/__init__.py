"""Crawling: HTTP fetcher, robots.txt, sitemap resolution, page extraction and the orchestrator."""
