"""Unit tests for the fetch/parse strategies (web page, sitemap, PDF, document).

HTTP is served by ``httpx.MockTransport``; PyMuPDF and the extraction
service are mocked.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from tests.conftest import html_page, make_http_client, sitemap_index, urlset, xml_response
from vectorqa.interfaces.document_extractor import IDocumentExtractor
from vectorqa.models.rag import RawUnit
from vectorqa.utils.errors import FetchError, ParseError, ValidationError


# ======================================================================
# WebPageProcessor
# ======================================================================


class TestWebPageProcessor:
    @pytest.mark.asyncio
    async def test_fetch_extracts_text_and_title(self) -> None:
        from vectorqa.services.ingestion.source_processors.web_page import WebPageProcessor

        url = "https://example.com/docs/intro"
        body = (
            "<header>Navigation</header>"
            "<article><h1>Introduction</h1>"
            "<p>Embeddings map text to vectors so similar passages sit close together.</p>"
            "</article>"
            "<script>var tracking = 1;</script>"
        )
        async with make_http_client({url: html_page(body, title="Intro")}) as client:
            units = await WebPageProcessor(client).fetch(url)

        assert len(units) == 1
        assert "Embeddings map text to vectors" in units[0].text
        assert "tracking" not in units[0].text
        assert units[0].metadata == {"source": url, "title": "Intro"}

    @pytest.mark.asyncio
    async def test_load_yields_the_fetched_units(self) -> None:
        from vectorqa.services.ingestion.source_processors.web_page import WebPageProcessor

        url = "https://example.com/faq"
        async with make_http_client({url: html_page("<p>Questions and answers.</p>")}) as client:
            async with WebPageProcessor(client).load(url) as units:
                assert "Questions and answers." in units[0].text

    @pytest.mark.asyncio
    async def test_empty_page_returns_no_units(self) -> None:
        from vectorqa.services.ingestion.source_processors.web_page import WebPageProcessor

        url = "https://example.com/blank"
        async with make_http_client({url: html_page("")}) as client:
            assert await WebPageProcessor(client).fetch(url) == []

    @pytest.mark.asyncio
    async def test_http_error_raises_fetch_error(self) -> None:
        from vectorqa.services.ingestion.source_processors.web_page import WebPageProcessor

        async with make_http_client({}) as client:
            with pytest.raises(FetchError):
                await WebPageProcessor(client).fetch("https://example.com/missing")

    @pytest.mark.asyncio
    async def test_binary_content_raises_parse_error(self) -> None:
        from vectorqa.services.ingestion.source_processors.web_page import WebPageProcessor

        url = "https://example.com/logo"
        response = httpx.Response(200, content=b"\x89PNG", headers={"content-type": "image/png"})
        async with make_http_client({url: response}) as client:
            with pytest.raises(ParseError):
                await WebPageProcessor(client).fetch(url)

    def test_sanitize_keeps_scalars(self) -> None:
        from vectorqa.services.ingestion.source_processors.web_page import WebPageProcessor

        processor = WebPageProcessor(MagicMock())
        cleaned = processor.sanitize_metadata(
            {"source": "https://e.com", "title": "T", "chunk_index": 2, "loc": {"lines": 1}, "tags": ["a"]}
        )
        assert cleaned == {"source": "https://e.com", "title": "T", "chunk_index": 2}


# ======================================================================
# SitemapProcessor
# ======================================================================


class TestSitemapProcessor:
    @pytest.mark.asyncio
    async def test_urlset_lists_locations_in_order(self) -> None:
        from vectorqa.services.ingestion.source_processors.sitemap import SitemapProcessor

        url = "https://example.com/sitemap.xml"
        xml = urlset("https://example.com/a", " https://example.com/b ", "https://example.com/a")
        async with make_http_client({url: xml_response(xml)}) as client:
            locators = await SitemapProcessor(client, fetch_delay=0).list_locators(url)

        assert locators == ["https://example.com/a", "https://example.com/b"]

    @pytest.mark.asyncio
    async def test_filter_then_limit(self) -> None:
        from vectorqa.services.ingestion.source_processors.sitemap import SitemapProcessor

        url = "https://example.com/sitemap.xml"
        xml = urlset(
            "https://example.com/blog/1",
            "https://example.com/about",
            "https://example.com/blog/2",
            "https://example.com/blog/3",
        )
        async with make_http_client({url: xml_response(xml)}) as client:
            locators = await SitemapProcessor(client, fetch_delay=0).list_locators(
                url, substring="/blog/", limit=2
            )

        assert locators == ["https://example.com/blog/1", "https://example.com/blog/2"]

    @pytest.mark.asyncio
    async def test_image_locations_are_not_listed(self) -> None:
        from vectorqa.services.ingestion.source_processors.sitemap import SitemapProcessor

        url = "https://example.com/sitemap.xml"
        xml = (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"'
            ' xmlns:image="http://www.google.com/schemas/sitemap-image/1.1">'
            "<url><loc>https://example.com/a</loc>"
            "<image:image><image:loc>https://example.com/a.jpg</image:loc></image:image></url>"
            "<url><loc>https://example.com/b</loc></url>"
            "</urlset>"
        )
        async with make_http_client({url: xml_response(xml)}) as client:
            locators = await SitemapProcessor(client, fetch_delay=0).list_locators(url, limit=2)

        assert locators == ["https://example.com/a", "https://example.com/b"]

    @pytest.mark.asyncio
    async def test_sitemap_index_expands_children_and_skips_failures(self) -> None:
        from vectorqa.services.ingestion.source_processors.sitemap import SitemapProcessor

        root = "https://example.com/sitemap.xml"
        routes = {
            root: xml_response(
                sitemap_index(
                    "https://example.com/posts-sitemap.xml",
                    "https://example.com/broken-sitemap.xml",
                    "https://example.com/pages-sitemap.xml",
                )
            ),
            "https://example.com/posts-sitemap.xml": xml_response(urlset("https://example.com/p1")),
            "https://example.com/pages-sitemap.xml": xml_response(urlset("https://example.com/about")),
        }
        async with make_http_client(routes) as client:
            processor = SitemapProcessor(client, fetch_concurrency=2, fetch_delay=0)
            locators = await processor.list_locators(root)

        assert locators == ["https://example.com/p1", "https://example.com/about"]

    @pytest.mark.asyncio
    async def test_batches_are_paced(self) -> None:
        from vectorqa.services.ingestion.source_processors.sitemap import SitemapProcessor

        root = "https://example.com/sitemap.xml"
        children = [f"https://example.com/s{i}-sitemap.xml" for i in range(3)]
        routes = {root: xml_response(sitemap_index(*children))}
        routes.update({child: xml_response(urlset(child + "#page")) for child in children})

        with patch("vectorqa.utils.concurrency.asyncio.sleep", new_callable=AsyncMock) as sleep:
            async with make_http_client(routes) as client:
                processor = SitemapProcessor(client, fetch_concurrency=2, fetch_delay=4.0)
                locators = await processor.list_locators(root)

        assert len(locators) == 3
        sleep.assert_awaited_once_with(4.0)

    @pytest.mark.asyncio
    async def test_non_sitemap_document_raises_parse_error(self) -> None:
        from vectorqa.services.ingestion.source_processors.sitemap import SitemapProcessor

        url = "https://example.com/sitemap.xml"
        async with make_http_client({url: xml_response("<rss><channel/></rss>")}) as client:
            with pytest.raises(ParseError):
                await SitemapProcessor(client).list_locators(url)

    @pytest.mark.asyncio
    async def test_unreachable_sitemap_raises_fetch_error(self) -> None:
        from vectorqa.services.ingestion.source_processors.sitemap import SitemapProcessor

        async with make_http_client({}) as client:
            with pytest.raises(FetchError):
                await SitemapProcessor(client).list_locators("https://example.com/sitemap.xml")


# ======================================================================
# PDFProcessor
# ======================================================================


def _mock_pdf(pages: list[str]) -> MagicMock:
    doc = MagicMock()
    doc.__len__.return_value = len(pages)
    page_mocks = []
    for text in pages:
        page = MagicMock()
        page.get_text.return_value = text
        page_mocks.append(page)
    doc.__getitem__.side_effect = lambda i: page_mocks[i]
    doc.metadata = {"title": "Quarterly Report", "author": ""}
    return doc


class TestPDFProcessor:
    _URL = "https://example.com/files/report.pdf"

    def _client(self) -> httpx.AsyncClient:
        return make_http_client({self._URL: httpx.Response(200, content=b"%PDF-1.4 fake")})

    @pytest.mark.asyncio
    @patch("vectorqa.services.ingestion.source_processors.pdf.fitz")
    async def test_one_unit_per_page_with_text(self, mock_fitz: MagicMock, tmp_path: Path) -> None:
        from vectorqa.services.ingestion.source_processors.pdf import PDFProcessor

        mock_fitz.open.return_value = _mock_pdf(["Page one text.", "   ", "Page three text."])

        async with self._client() as client:
            async with PDFProcessor(client, download_dir=tmp_path).load(self._URL) as units:
                assert [u.text for u in units] == ["Page one text.", "Page three text."]
                assert [u.metadata["page"] for u in units] == [1, 3]
                assert units[0].metadata["loc"] == {"pageNumber": 1}
                assert units[0].metadata["pdf"]["totalPages"] == 3
                assert units[0].metadata["pdf"]["info"] == {"title": "Quarterly Report"}
                local = Path(units[0].metadata["source"])
                assert local.name == "report.pdf"
                assert local.exists()

        assert not local.exists()
        assert list(tmp_path.glob("dl-*")) == []

    @pytest.mark.asyncio
    @patch("vectorqa.services.ingestion.source_processors.pdf.fitz")
    async def test_file_removed_when_block_raises(self, mock_fitz: MagicMock, tmp_path: Path) -> None:
        from vectorqa.services.ingestion.source_processors.pdf import PDFProcessor

        mock_fitz.open.return_value = _mock_pdf(["Some text."])

        async with self._client() as client:
            with pytest.raises(RuntimeError):
                async with PDFProcessor(client, download_dir=tmp_path).load(self._URL):
                    raise RuntimeError("upsert failed")

        assert list(tmp_path.glob("dl-*")) == []

    @pytest.mark.asyncio
    @patch("vectorqa.services.ingestion.source_processors.pdf.fitz")
    async def test_unreadable_pdf_raises_parse_error(self, mock_fitz: MagicMock, tmp_path: Path) -> None:
        from vectorqa.services.ingestion.source_processors.pdf import PDFProcessor

        mock_fitz.open.side_effect = RuntimeError("cannot open broken document")

        async with self._client() as client:
            with pytest.raises(ParseError):
                async with PDFProcessor(client, download_dir=tmp_path).load(self._URL):
                    pass

        assert list(tmp_path.glob("dl-*")) == []

    @pytest.mark.asyncio
    async def test_download_failure_leaves_nothing_behind(self, tmp_path: Path) -> None:
        from vectorqa.services.ingestion.source_processors.pdf import PDFProcessor

        async with make_http_client({}) as client:
            with pytest.raises(FetchError):
                async with PDFProcessor(client, download_dir=tmp_path).load(self._URL):
                    pass

        assert list(tmp_path.glob("dl-*")) == []

    @pytest.mark.asyncio
    async def test_url_without_file_name_is_rejected(self, tmp_path: Path) -> None:
        from vectorqa.services.ingestion.source_processors.pdf import PDFProcessor

        with pytest.raises(ValidationError, match="not a PDF file"):
            async with PDFProcessor(MagicMock(), download_dir=tmp_path).load("https://example.com/"):
                pass

    def test_sanitize_reduces_source_to_file_name(self) -> None:
        from vectorqa.services.ingestion.source_processors.pdf import PDFProcessor

        cleaned = PDFProcessor(MagicMock()).sanitize_metadata(
            {
                "source": "/tmp/docs/dl-x1/report.pdf",
                "page": 3,
                "loc": {"pageNumber": 3},
                "pdf": {"totalPages": 12, "info": {}},
                "chunk_index": 0,
            }
        )
        assert cleaned == {"source": "report.pdf", "page": 3, "chunk_index": 0}


# ======================================================================
# DocumentProcessor
# ======================================================================


class TestDocumentProcessor:
    _URL = "https://example.com/files/Meeting%20Notes.docx"

    @pytest.mark.asyncio
    async def test_extracts_downloaded_file(self, tmp_path: Path) -> None:
        from vectorqa.services.ingestion.source_processors.document import DocumentProcessor

        seen: list[Path] = []

        async def fake_extract(path: Path) -> list[RawUnit]:
            seen.append(path)
            assert path.read_bytes() == b"docx-bytes"
            return [RawUnit(text="Agenda", metadata={"filename": path.name, "category": "Title"})]

        extractor = MagicMock(spec=IDocumentExtractor)
        extractor.extract = AsyncMock(side_effect=fake_extract)
        extractor.get_provider_name.return_value = "mock-extractor"

        routes = {"https://example.com/files/Meeting%20Notes.docx": httpx.Response(200, content=b"docx-bytes")}
        async with make_http_client(routes) as client:
            processor = DocumentProcessor(client, extractor, download_dir=tmp_path)
            async with processor.load(self._URL) as units:
                assert units[0].text == "Agenda"

        assert seen[0].name == "Meeting Notes.docx"
        assert not seen[0].exists()

    @pytest.mark.asyncio
    async def test_url_without_file_name_is_rejected(self, tmp_path: Path) -> None:
        from vectorqa.services.ingestion.source_processors.document import DocumentProcessor

        processor = DocumentProcessor(MagicMock(), MagicMock(spec=IDocumentExtractor), download_dir=tmp_path)
        with pytest.raises(ValidationError, match="not a file URL"):
            async with processor.load("https://example.com/files/"):
                pass

    def test_sanitize_promotes_filename(self) -> None:
        from vectorqa.services.ingestion.source_processors.document import DocumentProcessor

        processor = DocumentProcessor(MagicMock(), MagicMock(spec=IDocumentExtractor))
        cleaned = processor.sanitize_metadata(
            {
                "source": "/tmp/docs/dl-a/notes.docx",
                "filename": "notes.docx",
                "category": "NarrativeText",
                "languages": ["eng"],
                "page_number": 1,
                "chunk_index": 4,
            }
        )
        assert cleaned == {"source": "notes.docx", "page_number": 1, "chunk_index": 4}
