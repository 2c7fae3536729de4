"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Loader settings and explicit environment loading.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

from .contracts import LoaderOptions
from .memo.registry import DEFAULT_MEMO_STORE
from .types import CacheKeyFn

ENV_PREFIX = "BATCHLOADER_"


def _env_first(*names: str, default: str | None = None) -> str | None:
    """
    Return the first non-empty environment variable in `names`.

    Args:
        *names: Environment variable names to check in order.
        default: Value returned if no non-empty variable is found.
    """
    for name in names:
        raw = os.getenv(name)
        if raw is None:
            continue
        value = raw.strip()
        if value:
            return value
    return default


class LoaderSettings(BaseModel):
    """Validated scalar loader settings, typically sourced from the environment."""

    batch: bool = True
    cache: bool = True
    max_batch_size: int | None = Field(default=None, ge=1)
    dispatch_delay_s: float = Field(default=0.0, ge=0.0)
    memo_store: str = Field(default=DEFAULT_MEMO_STORE, min_length=1)

    @staticmethod
    def from_env() -> "LoaderSettings":
        """
        Load settings from `BATCHLOADER_*` environment variables.

        Unset or blank variables keep their defaults. Values are validated by
        the model, so booleans accept `1/0/true/false/yes/no/on/off` and bad
        values raise `pydantic.ValidationError`.
        """
        raw: dict[str, str] = {}
        for field_name in LoaderSettings.model_fields:
            value = _env_first(f"{ENV_PREFIX}{field_name.upper()}")
            if value is not None:
                raw[field_name] = value
        return LoaderSettings.model_validate(raw)

    def to_options(self, *, cache_key_fn: CacheKeyFn | None = None) -> LoaderOptions:
        """Adapt settings into the `LoaderOptions` consumed by `DataLoader`."""
        return LoaderOptions(
            batch=self.batch,
            cache=self.cache,
            cache_key_fn=cache_key_fn,
            memo_store=self.memo_store,
            max_batch_size=self.max_batch_size,
            dispatch_delay_s=self.dispatch_delay_s,
        )
