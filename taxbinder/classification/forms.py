"""Tax form types with a dedicated field-extraction pass."""

STRUCTURED_FORM_TYPES: frozenset[str] = frozenset(
    {"W-2", "1099-INT", "1099-DIV", "1098", "1099-MISC", "1099-NEC", "K-1"}
)

FORM_FIELD_HINTS: dict[str, str] = {
    "W-2": """- Employer name and address (Box a-c)
- Employee name, SSN, address (Box d-f)
- Wages, tips, other compensation (Box 1)
- Federal income tax withheld (Box 2)
- Social security wages and tax (Box 3-4)
- Medicare wages and tax (Box 5-6)
- State wages and tax (Box 15-17)""",
    "1099-INT": """- Payer name and TIN
- Recipient name, TIN, address
- Interest income (Box 1)
- Early withdrawal penalty (Box 2)
- Interest on U.S. Savings Bonds (Box 3)
- Federal income tax withheld (Box 4)""",
    "1099-DIV": """- Payer name and TIN
- Recipient name, TIN, address
- Total ordinary dividends (Box 1a)
- Qualified dividends (Box 1b)
- Total capital gain distributions (Box 2a)
- Federal income tax withheld (Box 4)""",
    "1098": """- Lender name and address
- Borrower name and SSN
- Mortgage interest received (Box 1)
- Points paid on purchase (Box 2)
- Mortgage origination date (Box 3)
- Property address""",
}

GENERIC_FIELD_HINT = """- All relevant tax-related fields
- Names, addresses, and identification numbers
- Dollar amounts and dates
- Any box numbers and their values"""


_FORMS_BY_KEY: dict[str, str] = {form.upper(): form for form in STRUCTURED_FORM_TYPES}


def canonical_form_type(subcategory: str | None) -> str | None:
    """Return the known spelling of a structured form, or None for anything else."""
    if subcategory is None:
        return None
    return _FORMS_BY_KEY.get(subcategory.strip().upper())


def form_fields_hint(form_type: str) -> str:
    return FORM_FIELD_HINTS.get(form_type, GENERIC_FIELD_HINT)
