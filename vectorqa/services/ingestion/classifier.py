"""Source-type classification for ingestion locators.

Maps a locator to a :class:`~vectorqa.models.rag.SourceKind` from its path
alone; nothing is fetched.  The rules are checked in a fixed order and the
first match wins:

1. a "directly parseable" document extension  → GENERIC_DOCUMENT
2. a path ending in ``sitemap.xml``            → SITEMAP
3. a path ending in ``.pdf``                   → PDF
4. anything else                               → WEB_PAGE

Query strings and fragments are ignored, and matching is case-insensitive.
"""

from __future__ import annotations

from urllib.parse import urlparse

from vectorqa.models.rag import SourceKind

# Formats handed to the external extraction service.  Note that .html and
# .htm are here: a URL that names an HTML *file* is downloaded and extracted
# rather than scraped as a live page.
GENERIC_DOCUMENT_EXTENSIONS: tuple[str, ...] = (
    ".txt",
    ".text",
    ".docx",
    ".doc",
    ".jpg",
    ".jpeg",
    ".png",
    ".eml",
    ".html",
    ".htm",
    ".md",
    ".pptx",
    ".ppt",
    ".msg",
    ".rtf",
    ".xlsx",
    ".xls",
    ".odt",
    ".epub",
)


def _path_of(locator: str) -> str:
    try:
        path = urlparse(locator).path
    except ValueError:
        # Malformed netloc (e.g. an unbalanced IPv6 bracket); fall back to
        # stripping the query and fragment by hand.
        path = locator.split("#", 1)[0].split("?", 1)[0]
    return path.strip().lower()


def classify(locator: str) -> SourceKind:
    """Return the :class:`SourceKind` for *locator*.  Never raises."""
    path = _path_of(locator)
    if path.endswith(GENERIC_DOCUMENT_EXTENSIONS):
        return SourceKind.GENERIC_DOCUMENT
    if path.endswith("sitemap.xml"):
        return SourceKind.SITEMAP
    if path.endswith(".pdf"):
        return SourceKind.PDF
    return SourceKind.WEB_PAGE
