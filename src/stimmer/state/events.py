"""Action metadata attached to state transitions."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActionInfo(BaseModel):
    """Describes why a state transition happened.

    Handed to every observer together with the new state. It is never
    stored in the state itself.
    """

    model_config = ConfigDict(frozen=True)

    feature_name: str = Field(..., description="Feature/namespace the action belongs to")
    name: str = Field(..., description="Action name")
    args: tuple[Any, ...] = Field(default=(), description="Positional arguments the action was called with")
    is_async: bool = Field(default=False, description="Committed by an asynchronous leg")

    @field_validator("args", mode="before")
    @classmethod
    def _coerce_args(cls, value: Any) -> Any:
        if isinstance(value, list):
            return tuple(value)
        return value

    @property
    def label(self) -> str:
        """Display label, e.g. ``[counter] increment (async)``."""
        name = f"{self.name} (async)" if self.is_async else self.name
        return f"[{self.feature_name}] {name}"

    def as_async(self) -> ActionInfo:
        """Return a copy flagged as asynchronous."""
        if self.is_async:
            return self
        return self.model_copy(update={"is_async": True})
