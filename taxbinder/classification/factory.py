from typing import ClassVar

from taxbinder.classification.base import BaseClassifier
from taxbinder.classification.classifier import Classifier, DisabledClassifier
from taxbinder.classification.example_client_adapter import ExampleClientAdapter
from taxbinder.classification.openai_client_adapter import OpenAIClientAdapter
from taxbinder.config.settings import Settings
from taxbinder.retry import RetryPolicy


class ClassifierFactory:
    """Creates the configured classifier."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }
    # Local servers accept any key.
    KEYLESS_PROVIDERS: ClassVar[frozenset[str]] = frozenset({"ollama"})

    @classmethod
    def create(cls, settings: Settings) -> BaseClassifier:
        """Create a classifier from settings; missing credentials yield a disabled one."""
        provider = settings.classification_provider.lower()
        retry_policy = RetryPolicy.from_settings(settings)
        if provider == "example":
            return Classifier(
                client=ExampleClientAdapter(),
                model="example",
                retry_policy=retry_policy,
            )

        base_url = cls._resolve_base_url(provider, settings)
        api_key = settings.classification_openai_api_key
        if not api_key and provider not in cls.KEYLESS_PROVIDERS:
            return DisabledClassifier()

        client = OpenAIClientAdapter(
            api_key=api_key or provider,
            timeout_seconds=settings.classification_timeout_seconds,
            base_url=base_url,
        )
        return Classifier(
            client=client,
            model=settings.classification_openai_model_name,
            temperature=settings.classification_temperature,
            max_text_chars=settings.classification_max_text_chars,
            retry_policy=retry_policy,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = settings.classification_openai_compatible_base_url.strip()
            if not url:
                raise ValueError(
                    "classification_openai_compatible_base_url is required for "
                    "classification_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown classification provider '{provider}'. Choose from: {supported}"
        )
