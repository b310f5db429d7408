import io

import pdfplumber
from pdfplumber.page import Page

from taxbinder.ocr.base import BaseOcrEngine
from taxbinder.ocr.exceptions import OcrError, UnreadableDocumentError
from taxbinder.ocr.models import (
    OcrLine,
    OcrPage,
    OcrResult,
    OcrTable,
    OcrTableCell,
    join_page_texts,
)
from taxbinder.ocr.source import fetch_document_bytes

_PDF_MAGIC = b"%PDF"


class PdfPlumberOcrAdapter(BaseOcrEngine):
    """Reads the embedded text layer of PDFs locally with pdfplumber.

    No recognition is performed on scanned images; it is meant for
    development and for born-digital statements.
    """

    def __init__(self, *, timeout_seconds: int) -> None:
        self._timeout_seconds = timeout_seconds

    def is_configured(self) -> bool:
        return True

    def analyze(self, document_url: str) -> OcrResult:
        data = fetch_document_bytes(document_url, self._timeout_seconds)
        if not data.startswith(_PDF_MAGIC):
            raise OcrError("pdfplumber engine only supports PDF documents")
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                pages = [self._read_page(page) for page in pdf.pages]
                tables = [
                    self._to_table(rows)
                    for page in pdf.pages
                    for rows in page.extract_tables()
                ]
        except Exception as exc:
            raise UnreadableDocumentError(f"pdfplumber could not decode PDF: {exc}") from exc
        return OcrResult(text=join_page_texts(pages).strip(), pages=pages, tables=tables)

    @staticmethod
    def _read_page(page: Page) -> OcrPage:
        lines = [
            OcrLine(
                content=line["text"],
                bounding_box=[line["x0"], line["top"], line["x1"], line["bottom"]],
            )
            for line in page.extract_text_lines()
        ]
        return OcrPage(
            page_number=page.page_number,
            width=float(page.width),
            height=float(page.height),
            text=page.extract_text() or "",
            lines=lines,
        )

    @staticmethod
    def _to_table(rows: list[list[str | None]]) -> OcrTable:
        cells = [
            OcrTableCell(row_index=r, column_index=c, content=value or "")
            for r, row in enumerate(rows)
            for c, value in enumerate(row)
        ]
        column_count = max((len(row) for row in rows), default=0)
        return OcrTable(row_count=len(rows), column_count=column_count, cells=cells)
