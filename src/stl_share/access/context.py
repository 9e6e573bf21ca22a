"""Access context: which credential a browsing session runs under."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

DEFAULT_PREVIEW_PREFIX = "preview:"


@dataclass(frozen=True)
class OwnerCredential:
    """The signed-in owner's own Drive bearer token."""

    bearer: str

    def __repr__(self) -> str:
        return "OwnerCredential(bearer=***)"


@dataclass(frozen=True)
class PreviewToken:
    """A share token held by an anonymous visitor."""

    token: str

    def __repr__(self) -> str:
        return "PreviewToken(token=***)"


AccessContext = Union[OwnerCredential, PreviewToken]


def access_context_from_credential(
    credential: str, preview_prefix: str = DEFAULT_PREVIEW_PREFIX
) -> AccessContext:
    """Decide, once per credential value, which access variant applies.

    A credential starting with ``preview_prefix`` is a share token (the prefix
    is stripped); anything else is an owner bearer token used as-is.

    Raises:
        ValueError: If the credential, or the token after the prefix, is empty.
    """
    if not credential:
        raise ValueError("No access token available")
    if credential.startswith(preview_prefix):
        token = credential[len(preview_prefix) :]
        if not token:
            raise ValueError("Preview credential carries no token")
        return PreviewToken(token)
    return OwnerCredential(credential)


def preview_credential(token: str, preview_prefix: str = DEFAULT_PREVIEW_PREFIX) -> str:
    """Wrap a share token in the preview credential convention."""
    return f"{preview_prefix}{token}"
