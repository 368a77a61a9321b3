"""Parsers for sitemap XML and page HTML."""
