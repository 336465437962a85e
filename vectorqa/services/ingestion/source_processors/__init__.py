"""Fetch/parse strategies, one per source kind.

- **WebPageProcessor**  -- single HTTP GET, trafilatura / BeautifulSoup text
- **SitemapProcessor**  -- expands ``<urlset>`` / ``<sitemapindex>`` into locators
- **PDFProcessor**      -- scoped download, PyMuPDF page-by-page parse
- **DocumentProcessor** -- scoped download, external extraction service

Every processor except the sitemap one follows the
:class:`~vectorqa.services.ingestion.source_processors.base.SourceProcessor`
contract (``load`` + ``sanitize_metadata``).
"""

from vectorqa.services.ingestion.source_processors.base import SourceProcessor
from vectorqa.services.ingestion.source_processors.document import DocumentProcessor
from vectorqa.services.ingestion.source_processors.pdf import PDFProcessor
from vectorqa.services.ingestion.source_processors.sitemap import SitemapProcessor
from vectorqa.services.ingestion.source_processors.web_page import WebPageProcessor

__all__ = [
    "DocumentProcessor",
    "PDFProcessor",
    "SitemapProcessor",
    "SourceProcessor",
    "WebPageProcessor",
]
