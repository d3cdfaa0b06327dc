"""Store configuration for stimmer."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from stimmer.exceptions import StimmerConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class StimmerConfig:
    """Store and inspection bridge configuration.

    Parameters
    ----------
    devtools_enabled : bool
        Forward state changes to the inspection extension when one is
        installed.
    devtools_name : str
        Connection name announced to the inspection extension.
    devtools_max_age : int
        Number of actions the inspection extension keeps in history.
    log_args : bool
        Include (redacted) action arguments in DEBUG logs.
    """

    devtools_enabled: bool = True
    devtools_name: str = "Stimmer dev tools"
    devtools_max_age: int = 50
    log_args: bool = True

    def __post_init__(self) -> None:
        if self.devtools_max_age <= 0:
            raise StimmerConfigError(f"devtools_max_age must be positive, got {self.devtools_max_age}")

    @classmethod
    def from_env(cls, **overrides: Any) -> StimmerConfig:
        """Create configuration from environment variables.

        Reads ``STIMMER_DEVTOOLS_ENABLED``, ``STIMMER_DEVTOOLS_NAME``,
        ``STIMMER_DEVTOOLS_MAX_AGE`` and ``STIMMER_LOG_ARGS``. Explicit
        keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        StimmerConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        name_env = env.get("STIMMER_DEVTOOLS_NAME")
        if name_env is not None:
            config_kwargs["devtools_name"] = name_env

        max_age_env = env.get("STIMMER_DEVTOOLS_MAX_AGE")
        if max_age_env is not None and "devtools_max_age" not in overrides:
            try:
                config_kwargs["devtools_max_age"] = int(max_age_env)
            except ValueError as exc:
                raise StimmerConfigError(f"STIMMER_DEVTOOLS_MAX_AGE is not an integer: {max_age_env!r}") from exc

        if "devtools_enabled" not in overrides:
            config_kwargs["devtools_enabled"] = _env_bool(env.get("STIMMER_DEVTOOLS_ENABLED"), True)

        if "log_args" not in overrides:
            config_kwargs["log_args"] = _env_bool(env.get("STIMMER_LOG_ARGS"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
