"""Provider/runtime configuration for the gateway.

Architectural role:
    Centralizes upstream endpoints, default models, credential environment
    variables and process settings consumed by `gateway.core` and the provider
    adapters.

Settings flow:
    - `GatewaySettings.from_env` is evaluated once at process start by the HTTP
      and CLI entrypoints.
    - The resulting per-provider default credentials are handed to
      `CredentialResolver`; adapters never read the environment.

Determinism:
    Deterministic for a fixed process environment and `.env` file. Values are
    resolved when `from_env` is called, never per request.

Failure behavior:
    Missing credential variables are simply absent from
    `default_credentials`; the resolver reports them per request.
"""

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from dotenv import load_dotenv

from gateway.core.contracts import ProviderId

load_dotenv()


# Upstream endpoints.
OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_IMAGES_URL = "https://api.openai.com/v1/images/generations"

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_GENERATE_URL_TEMPLATE = GEMINI_BASE_URL + "/models/{model}:generateContent"
GEMINI_MODELS_URL = GEMINI_BASE_URL + "/models"

GROQ_CHAT_URL = "https://api.groq.com/openai/v1/chat/completions"

HUGGING_FACE_URL_TEMPLATE = "https://api-inference.huggingface.co/models/{model}"

STABILITY_CORE_URL = "https://api.stability.ai/v2beta/stable-image/generate/core"
DREAMSTUDIO_URL_TEMPLATE = "https://api.stability.ai/v1/generation/{engine}/text-to-image"

DEEPAI_TEXT2IMG_URL = "https://api.deepai.org/api/text2img"


# Default models per request kind.
OPENAI_TEXT_MODEL = "gpt-4o-mini"
OPENAI_ROADMAP_MODEL = "gpt-4o"
OPENAI_IMAGE_MODEL = "dall-e-3"

GEMINI_TEXT_MODEL = "gemini-2.5-flash"
GEMINI_ROADMAP_MODEL = "gemini-2.5-pro"
GEMINI_IMAGE_MODEL = "gemini-2.5-flash-image"

LLAMA_TEXT_MODEL = "llama-3.1-8b-instant"
LLAMA_ROADMAP_MODEL = "llama-3.3-70b-versatile"

HUGGING_FACE_TEXT_MODEL = "mistralai/Mistral-7B-Instruct-v0.3"
HUGGING_FACE_IMAGE_MODEL = "stabilityai/stable-diffusion-xl-base-1.0"

DREAMSTUDIO_ENGINE = "stable-diffusion-xl-1024-v1-0"


# Shared instruction for structured roadmap generation.
ROADMAP_SYSTEM_MESSAGE = (
    "You are an expert art instructor. Respond with a single JSON object "
    "containing a 'materials' array and a 'steps' array. Return ONLY valid JSON."
)


# Credential variables per provider; the first non-empty value wins.
CREDENTIAL_ENV_VARS: dict[ProviderId, tuple[str, ...]] = {
    ProviderId.GEMINI: ("GEMINI_API_KEY", "VITE_GEMINI_API_KEY"),
    ProviderId.NANOBANANA: ("GEMINI_API_KEY", "VITE_GEMINI_API_KEY"),
    ProviderId.GEMINI_LIST_MODELS: ("GEMINI_API_KEY", "VITE_GEMINI_API_KEY"),
    ProviderId.OPENAI: ("OPENAI_API_KEY", "VITE_OPENAI_API_KEY"),
    ProviderId.HUGGING_FACE: ("HF_API_KEY", "HUGGINGFACE_API_KEY"),
    ProviderId.STABILITY: ("STABILITY_API_KEY", "STABILITYAI_API_KEY"),
    ProviderId.DREAMSTUDIO: ("DREAMSTUDIO_API_KEY", "STABILITY_API_KEY"),
    ProviderId.DEEPAI: ("DEEPAI_API_KEY",),
    ProviderId.LLAMA: ("GROQ_API_KEY", "LLAMA_API_KEY"),
}

DEFAULT_TIMEOUT_SECONDS = 60.0

_TRUTHY = {"1", "true", "yes", "on"}


def env_flag(value: str | None) -> bool:
    """Interpret an environment string as a boolean switch."""
    return str(value or "").strip().lower() in _TRUTHY


def load_default_credentials(env: Mapping[str, str]) -> dict[ProviderId, str]:
    """Collect per-provider default credentials from an environment mapping.

    Args:
        env: Environment mapping (normally `os.environ`).

    Returns:
        Mapping of provider to the first non-empty configured credential.
        Providers without any configured variable are omitted.
    """
    defaults: dict[ProviderId, str] = {}
    for provider, names in CREDENTIAL_ENV_VARS.items():
        for name in names:
            value = (env.get(name) or "").strip()
            if value:
                defaults[provider] = value
                break
    return defaults


@dataclass(frozen=True)
class GatewaySettings:
    """Process-wide configuration fixed at startup."""

    default_credentials: Mapping[ProviderId, str] = field(default_factory=dict, repr=False)
    demo_mode: bool = False
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    cors_allow_origin: str = "*"
    debug: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "default_credentials", MappingProxyType(dict(self.default_credentials))
        )

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "GatewaySettings":
        source = os.environ if env is None else env
        raw_timeout = (source.get("UPSTREAM_TIMEOUT_SECONDS") or "").strip()
        try:
            timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT_SECONDS
        except ValueError:
            timeout = DEFAULT_TIMEOUT_SECONDS
        if timeout <= 0:
            timeout = DEFAULT_TIMEOUT_SECONDS
        return cls(
            default_credentials=load_default_credentials(source),
            demo_mode=env_flag(source.get("DEMO_MODE")),
            timeout_seconds=timeout,
            cors_allow_origin=(source.get("CORS_ALLOW_ORIGIN") or "*").strip() or "*",
            debug=env_flag(source.get("DEBUG")),
        )
