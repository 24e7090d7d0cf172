import logging
import os
from dataclasses import dataclass

import fitz  # PyMuPDF

from resumematch.core.exceptions import RasterizationError

logger = logging.getLogger(__name__)

DEFAULT_SCALE = 4.0

@dataclass(frozen=True)
class RasterImage:
    filename: str
    data: bytes
    width: int
    height: int

def rasterize_first_page(document: bytes, filename: str = "resume.pdf", scale: float = DEFAULT_SCALE) -> RasterImage:
    """
    Render the first page of a PDF to a PNG image.

    Args:
        document: Raw PDF bytes
        filename: Original filename; the image is named after its stem
        scale: Zoom factor over the 72 DPI page size

    Returns:
        RasterImage with PNG bytes and pixel dimensions

    Raises:
        RasterizationError: If the bytes are not a readable PDF or have no pages
    """
    if not document:
        raise RasterizationError("Document is empty")

    try:
        pdf = fitz.open(stream=document, filetype="pdf")
    except Exception as e:
        raise RasterizationError(f"Could not open document: {e}") from e

    try:
        if pdf.page_count == 0:
            raise RasterizationError("Document has no pages")
        page = pdf[0]
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale))
        data = pix.tobytes("png")
        width, height = pix.width, pix.height
    except RasterizationError:
        raise
    except Exception as e:
        raise RasterizationError(f"Could not render first page: {e}") from e
    finally:
        pdf.close()

    stem = os.path.splitext(os.path.basename(filename))[0] or "resume"
    logger.info(f"Rendered first page of {filename} at {width}x{height}")
    return RasterImage(filename=f"{stem}.png", data=data, width=width, height=height)

def extract_document_text(document: bytes) -> str:
    """Plain text of every page, used as the model input for critiques."""
    try:
        pdf = fitz.open(stream=document, filetype="pdf")
    except Exception as e:
        raise RasterizationError(f"Could not open document: {e}") from e
    try:
        return "\n".join(page.get_text() for page in pdf).strip()
    finally:
        pdf.close()
