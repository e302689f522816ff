"""Provider alias normalization.

Maps caller-supplied provider strings to canonical `ProviderId` values.
Comparison ignores case, whitespace and the separators `-`, `_` and `.`, so
"Stability AI", "stability-ai" and "STABILITY_AI" all resolve identically.
"""

from __future__ import annotations

import re

from gateway.core.contracts import ProviderId


class UnknownProviderError(ValueError):
    """Raised when a provider string matches no canonical provider or alias."""

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(f"unknown_provider:{raw}")


_SEPARATORS = re.compile(r"[\s\-_.]+")

PROVIDER_ALIASES: dict[str, ProviderId] = {
    "openai": ProviderId.OPENAI,
    "chatgpt": ProviderId.OPENAI,
    "gpt": ProviderId.OPENAI,
    "dalle": ProviderId.OPENAI,
    "gemini": ProviderId.GEMINI,
    "google": ProviderId.GEMINI,
    "googlegemini": ProviderId.GEMINI,
    "stability": ProviderId.STABILITY,
    "stabilityai": ProviderId.STABILITY,
    "stablediffusion": ProviderId.STABILITY,
    "huggingface": ProviderId.HUGGING_FACE,
    "hf": ProviderId.HUGGING_FACE,
    "deepai": ProviderId.DEEPAI,
    "runway": ProviderId.RUNWAY,
    "runwayml": ProviderId.RUNWAY,
    "midjourney": ProviderId.MIDJOURNEY,
    "mj": ProviderId.MIDJOURNEY,
    "nanobanana": ProviderId.NANOBANANA,
    "geminiimage": ProviderId.NANOBANANA,
    "dreamstudio": ProviderId.DREAMSTUDIO,
    "artbreeder": ProviderId.ARTBREEDER,
    "llama": ProviderId.LLAMA,
    "meta": ProviderId.LLAMA,
    "metallama": ProviderId.LLAMA,
    "groq": ProviderId.LLAMA,
    "replicate": ProviderId.REPLICATE,
    "geminilistmodels": ProviderId.GEMINI_LIST_MODELS,
}


def compact_key(raw: str) -> str:
    """Return the separator-free lower-case form used for alias lookup."""
    return _SEPARATORS.sub("", raw.strip().lower())


def normalize_provider(raw: str) -> ProviderId:
    """Resolve a free-form provider string to its canonical identifier.

    Args:
        raw: Provider string as received on the wire.

    Returns:
        The matching `ProviderId`.

    Raises:
        UnknownProviderError: when neither a canonical name nor an alias matches.
    """
    key = compact_key(raw or "")
    provider = PROVIDER_ALIASES.get(key)
    if provider is None:
        raise UnknownProviderError(raw)
    return provider
