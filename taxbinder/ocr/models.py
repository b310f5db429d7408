from dataclasses import dataclass, field


@dataclass(frozen=True)
class OcrLine:
    content: str
    bounding_box: list[float] | None = None


@dataclass(frozen=True)
class OcrPage:
    page_number: int
    width: float = 0.0
    height: float = 0.0
    text: str = ""
    lines: list[OcrLine] = field(default_factory=list)


@dataclass(frozen=True)
class OcrTableCell:
    row_index: int
    column_index: int
    content: str


@dataclass(frozen=True)
class OcrTable:
    row_count: int
    column_count: int
    cells: list[OcrTableCell] = field(default_factory=list)


@dataclass(frozen=True)
class OcrKeyValuePair:
    key: str
    value: str
    confidence: float = 0.0


@dataclass(frozen=True)
class OcrResult:
    """Output of the OCR capability: full text plus layout."""

    text: str
    pages: list[OcrPage] = field(default_factory=list)
    tables: list[OcrTable] = field(default_factory=list)
    key_value_pairs: list[OcrKeyValuePair] = field(default_factory=list)
    document_type: str | None = None
    confidence: float | None = None

    def metadata(self) -> dict[str, int]:
        """Counts recorded alongside extracted data."""
        return {
            "page_count": len(self.pages),
            "table_count": len(self.tables),
            "key_value_pair_count": len(self.key_value_pairs),
        }


def join_page_texts(pages: list[OcrPage]) -> str:
    return "\n\n".join(page.text for page in pages)
