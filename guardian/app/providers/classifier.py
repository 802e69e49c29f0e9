"""Credential classification by key prefix."""

from enum import Enum


class ProviderTag(str, Enum):
    """Upstream chat-completion services, identified from the credential."""

    GROQ = "groq"
    PERPLEXITY = "perplexity"
    HUGGINGFACE = "huggingface"
    OPENAI = "openai"
    UNKNOWN = "unknown"


# Checked in this order; first match wins.
KEY_PREFIXES: tuple[tuple[str, ProviderTag], ...] = (
    ("gsk_", ProviderTag.GROQ),
    ("pplx-", ProviderTag.PERPLEXITY),
    ("hf_", ProviderTag.HUGGINGFACE),
    ("sk-", ProviderTag.OPENAI),
)


def classify(credential: str | None) -> ProviderTag:
    """Return the provider a credential belongs to.

    Never raises: empty, ``None`` and unrecognised credentials are
    ``ProviderTag.UNKNOWN``.
    """
    if not isinstance(credential, str) or not credential:
        return ProviderTag.UNKNOWN
    for prefix, tag in KEY_PREFIXES:
        if credential.startswith(prefix):
            return tag
    return ProviderTag.UNKNOWN
