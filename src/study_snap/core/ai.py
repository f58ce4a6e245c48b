"""Shared AI helper utilities."""

from __future__ import annotations

import os
from typing import Any, Mapping

from dotenv import load_dotenv
from openai import OpenAI

__all__ = ["DEFAULT_API_KEY_ENV", "load_client"]

DEFAULT_API_KEY_ENV = "PPLX_API_KEY"


def load_client(
    *,
    api_key_env: str = DEFAULT_API_KEY_ENV,
    api_base: str | None = None,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
) -> Any:
    """Initialize an OpenAI-compatible client from environment credentials.

    ``api_base`` points the client at any OpenAI-compatible endpoint
    (Perplexity by default in the shipped configuration).
    """
    if env is None:
        load_dotenv()
        env = os.environ
    api_key = env.get(api_key_env)
    if not api_key:
        raise RuntimeError(
            f"{api_key_env} not found in environment. Set it or add to .env"
        )
    kwargs: dict[str, Any] = {"api_key": api_key}
    if api_base:
        kwargs["base_url"] = api_base
    if timeout is not None:
        kwargs["timeout"] = timeout
    return OpenAI(**kwargs)
