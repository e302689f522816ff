"""Upstream provider package.

Architectural role:
    Provides provider configuration, the HTTP transport and one adapter per
    upstream protocol, plus the read-only registry the pipeline dispatches
    through.

Module split:
    - `provider_config`: endpoints, models and environment-driven settings.
    - `base`: adapter base class, transport and parsing helpers.
    - `openai`, `gemini`, `huggingface`, `stability`, `deepai`: adapters.
    - `registry`: capability descriptors keyed by provider, including the
      providers that cannot be served synchronously.
"""
