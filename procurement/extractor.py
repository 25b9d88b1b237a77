"""
PDF text extraction.

PdfTextExtractor -- rebuilds the visual reading order of a PDF from the
          positioned words pdfplumber reports for each page.

Many generated purchase orders emit their table cells out of order in the
content stream, so page.extract_text() interleaves columns from different
rows.  Here every word keeps its coordinates; words are ordered top of page
first, words within `line_tolerance` of each other vertically are treated as
one visual line and ordered left to right, and a horizontal gap wider than
`column_gap` is kept as a double space so column boundaries survive into the
text handed to the field parser.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .exceptions import ExtractionError, NoTextError

logger = logging.getLogger(__name__)

COLUMN_SEPARATOR = "  "


@dataclass(frozen=True)
class TextFragment:
    """
    One positioned run of text.

    x:  left edge, increasing to the right.
    y:  baseline height in PDF space, increasing towards the top of the page.
    """
    text: str
    x: float
    y: float
    x1: float | None = None     # right edge, when known


def reconstruct_lines(
    fragments: Iterable[TextFragment],
    tolerance: float = 5.0,
    column_gap: float = 10.0,
) -> list[str]:
    """
    Order fragments into visual lines and return the trimmed, non-blank lines.

    A new line starts whenever the vertical position drops more than
    `tolerance` below the previous fragment.
    """
    ordered = sorted(fragments, key=lambda f: (-f.y, f.x))
    rows: list[list[TextFragment]] = []
    current: list[TextFragment] = []
    prev_y: float | None = None

    for frag in ordered:
        if prev_y is not None and prev_y - frag.y > tolerance:
            rows.append(current)
            current = []
        current.append(frag)
        prev_y = frag.y
    if current:
        rows.append(current)

    lines: list[str] = []
    for row in rows:
        row.sort(key=lambda f: f.x)
        parts: list[str] = []
        prev: TextFragment | None = None
        for frag in row:
            if prev is not None:
                right = prev.x1 if prev.x1 is not None else prev.x
                parts.append(COLUMN_SEPARATOR if frag.x - right > column_gap else " ")
            parts.append(frag.text)
            prev = frag
        line = "".join(parts).strip()
        if line:
            lines.append(line)
    return lines


class PdfTextExtractor:
    """Extracts reading-order text lines from a text-layer PDF via pdfplumber."""

    def __init__(self, line_tolerance: float = 5.0, column_gap: float = 10.0):
        self.line_tolerance = line_tolerance
        self.column_gap = column_gap

    def extract_lines(self, pdf_path: str | Path) -> list[str]:
        """
        Return the document's lines, page by page, in visual reading order.

        Raises ExtractionError if the file is missing, is not a readable PDF,
        or contains no extractable text (e.g. an image-only scan).
        """
        import pdfplumber

        pdf_path = Path(pdf_path)
        if not pdf_path.exists():
            raise ExtractionError("PDF not found", pdf_path)

        lines: list[str] = []
        try:
            with pdfplumber.open(str(pdf_path)) as pdf:
                page_count = len(pdf.pages)
                for i, page in enumerate(pdf.pages):
                    page_lines = reconstruct_lines(
                        self._page_fragments(page),
                        tolerance=self.line_tolerance,
                        column_gap=self.column_gap,
                    )
                    if not page_lines:
                        logger.debug("Page %d yielded no text (may be scanned)", i + 1)
                    lines.extend(page_lines)
        except Exception as exc:
            raise ExtractionError(f"Could not open PDF: {exc}", pdf_path) from exc

        if not lines:
            raise NoTextError(
                "No text found in PDF. This might be a scanned image without a text layer.",
                pdf_path,
            )

        logger.info(
            "pdfplumber extracted %d lines from %s (%d pages)",
            len(lines), pdf_path.name, page_count,
        )
        return lines

    @staticmethod
    def _page_fragments(page) -> list[TextFragment]:
        height = float(page.height)
        return [
            TextFragment(
                text=word["text"],
                x=float(word["x0"]),
                y=height - float(word["bottom"]),
                x1=float(word["x1"]),
            )
            for word in page.extract_words(keep_blank_chars=False)
            if str(word.get("text", "")).strip()
        ]
