from taxbinder.config.settings import Settings
from taxbinder.ocr.azure_adapter import AzureDocumentIntelligenceAdapter
from taxbinder.ocr.base import BaseOcrEngine, DisabledOcrEngine
from taxbinder.ocr.pdfplumber_adapter import PdfPlumberOcrAdapter


class OcrEngineFactory:
    """Creates the configured OCR engine.

    An Azure provider without endpoint or key yields an engine whose
    ``is_configured()`` is False, so the pipeline skips OCR instead of failing.
    """

    PROVIDERS = ("azure", "pdfplumber", "none")

    @classmethod
    def create(cls, settings: Settings) -> BaseOcrEngine:
        provider = settings.ocr_provider.lower()
        if provider == "azure":
            if not (
                settings.azure_document_intelligence_endpoint
                and settings.azure_document_intelligence_key
            ):
                return DisabledOcrEngine()
            return AzureDocumentIntelligenceAdapter(
                endpoint=settings.azure_document_intelligence_endpoint,
                api_key=settings.azure_document_intelligence_key,
                api_version=settings.azure_document_intelligence_api_version,
                timeout_seconds=settings.ocr_timeout_seconds,
                poll_interval_seconds=settings.ocr_poll_interval_seconds,
            )
        if provider == "pdfplumber":
            return PdfPlumberOcrAdapter(timeout_seconds=settings.ocr_timeout_seconds)
        if provider == "none":
            return DisabledOcrEngine()
        raise ValueError(
            f"Unknown OCR provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
