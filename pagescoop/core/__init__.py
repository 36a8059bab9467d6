"""Core scraping components: selectors, fetchers, extraction and the job runner."""

from pagescoop.core.pipeline import Scraper, extract_records

__all__ = ['Scraper', 'extract_records']
