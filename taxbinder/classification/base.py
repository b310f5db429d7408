from abc import ABC, abstractmethod

from taxbinder.classification.models import ClassificationResult, FormExtraction


class BaseClassifier(ABC):
    """Contract for the classification capability."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Return False when no provider credentials are available."""

    @abstractmethod
    def classify(self, text: str) -> ClassificationResult:
        """Classify OCR text into a category from the fixed enumeration.

        Raises:
            ClassificationError: on any failure, after transient retries.
        """

    @abstractmethod
    def extract_form_fields(self, text: str, form_type: str) -> FormExtraction:
        """Extract key/value fields for a known structured form type.

        Raises:
            ClassificationError: on any failure, after transient retries.
        """
