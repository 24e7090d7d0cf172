import pytest

from resumematch.core.exceptions import RasterizationError
from resumematch.services.rasterizer import extract_document_text, rasterize_first_page

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def test_renders_first_page_as_png(sample_pdf):
    image = rasterize_first_page(sample_pdf, filename="jane_doe.pdf", scale=2.0)
    assert image.data.startswith(PNG_MAGIC)
    assert image.filename == "jane_doe.png"
    assert (image.width, image.height) == (400, 600)


def test_only_first_page_is_rendered(pdf_factory):
    image = rasterize_first_page(pdf_factory(pages=3), scale=1.0)
    assert (image.width, image.height) == (200, 300)


def test_rendering_is_deterministic(sample_pdf):
    first = rasterize_first_page(sample_pdf, scale=1.0)
    second = rasterize_first_page(sample_pdf, scale=1.0)
    assert first.data == second.data


def test_empty_document():
    with pytest.raises(RasterizationError):
        rasterize_first_page(b"")


def test_not_a_pdf():
    with pytest.raises(RasterizationError):
        rasterize_first_page(b"this is not a pdf at all")


def test_extract_document_text(pdf_factory):
    text = extract_document_text(pdf_factory(text="Go services"))
    assert "Go services" in text
