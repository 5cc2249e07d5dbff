"""
src/errors.py
==============
Error Taxonomy — Smart Listener

Responsibility:
    - Define the distinguished failures raised across the answer pipeline
    - Carry structured attributes so callers can special-case them
      (e.g. show ``user_message`` for quota exhaustion)

This module does NOT:
    - Log, retry, or classify errors (see src.model_fallback)
    - Catch anything
"""

from typing import Sequence


# Default user-facing text for an exhausted model list
QUOTA_EXHAUSTED_MESSAGE: str = (
    "Free-tier quota reached. Try again later or switch to a paid plan "
    "for more requests."
)


class QuotaExhaustedError(Exception):
    """Raised when every model/attempt combination failed."""

    is_quota_error: bool = True

    def __init__(
        self,
        models: Sequence[str],
        last_error: Exception | None = None,
        user_message: str = QUOTA_EXHAUSTED_MESSAGE,
    ):
        self.models = list(models)
        self.last_error = last_error
        self.user_message = user_message
        super().__init__(
            f"FREE_QUOTA_EXHAUSTED: all models failed ({', '.join(self.models) or 'none'})"
        )


class CredentialUnavailableError(Exception):
    """Raised when no API credential can be resolved for the provider."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"API credential not available for provider '{provider}'")


class ProviderResponseError(Exception):
    """Raised when a provider answers without usable completion text."""

    def __init__(self, provider: str, model: str, message: str):
        self.provider = provider
        self.model = model
        self.message = message
        super().__init__(f"{provider} model {model} returned an invalid response: {message}")
