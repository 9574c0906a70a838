"""
Run configuration.

Every setting has a default that reproduces the stock behaviour (a 30 s
overall deadline and a 2 s fixed settle window), so the tool needs no
environment at all.  Values may be overridden through ``CSP_RECON_*``
environment variables or a ``.env`` file.

Uses ``pydantic_settings.BaseSettings`` for environment variable
binding, type coercion, and validation.
"""

from __future__ import annotations

from typing import Literal

import pydantic
import pydantic_settings

SettleStrategyName = Literal["fixed", "network-idle"]


class ReconConfig(pydantic_settings.BaseSettings):
    """Settings for a single reconnaissance run.

    Attributes:
        timeout_seconds: Overall deadline covering navigation,
            observation and every script fetch.
        settle_ms: How long to keep observing after navigation.
        settle_strategy: ``fixed`` sleeps for ``settle_ms``;
            ``network-idle`` waits for the network to go quiet,
            giving up after ``settle_ms``.
        headless: Run the browser without a window.
        max_concurrency: Cap on simultaneous script fetches.
            ``None`` fetches every script at once.
    """

    model_config = pydantic_settings.SettingsConfigDict(env_prefix="CSP_RECON_")

    timeout_seconds: float = pydantic.Field(default=30.0, gt=0)
    settle_ms: int = pydantic.Field(default=2000, ge=0)
    settle_strategy: SettleStrategyName = "fixed"
    headless: bool = True
    max_concurrency: int | None = pydantic.Field(default=None, ge=1)
