from enum import Enum


class DocumentCategory(str, Enum):
    INCOME = "income"
    DEDUCTIONS = "deductions"
    EXPENSES = "expenses"
    BANKING = "banking"
    PROPERTY = "property"
    IDENTITY = "identity"
    OTHER = "other"


DOCUMENT_CATEGORIES: dict[DocumentCategory, tuple[str, ...]] = {
    DocumentCategory.INCOME: (
        "W-2",
        "1099-INT",
        "1099-DIV",
        "1099-B",
        "1099-MISC",
        "1099-NEC",
        "1099-R",
        "K-1",
        "SSA-1099",
    ),
    DocumentCategory.DEDUCTIONS: (
        "1098",
        "1098-T",
        "1098-E",
        "Medical receipts",
        "Charitable donations",
        "Property tax",
    ),
    DocumentCategory.EXPENSES: (
        "Business receipts",
        "Home office",
        "Vehicle logs",
        "Travel expenses",
        "Equipment",
    ),
    DocumentCategory.BANKING: (
        "Bank statement",
        "Investment statement",
        "Brokerage statement",
    ),
    DocumentCategory.PROPERTY: (
        "Property tax bill",
        "Purchase documents",
        "Sale documents",
        "Closing statement",
    ),
    DocumentCategory.IDENTITY: (
        "Drivers license",
        "Prior year return",
        "Social security card",
    ),
    DocumentCategory.OTHER: ("Miscellaneous", "Unclassified"),
}

FALLBACK_CATEGORY = DocumentCategory.OTHER
FALLBACK_SUBCATEGORY = "Unclassified"


def parse_category(value: object) -> DocumentCategory | None:
    """Return the matching category, or None for anything outside the enumeration."""
    if not isinstance(value, str):
        return None
    try:
        return DocumentCategory(value.strip().lower())
    except ValueError:
        return None
