"""
Per-function batching configuration.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from microbatcher.payload import PayloadShape

DEFAULT_FLUSH_INTERVAL_MS = 50


class ErrorPolicy(StrEnum):
    preserve = "preserve"
    wrap = "wrap"


class BatchOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    flush_interval_ms: int | None = Field(
        default=None,
        ge=0,
        description=(
            "time window before an automatic flush. Defaults to 50ms with a batch resolver, "
            "0 (next event-loop tick) without one"
        ),
    )
    size_threshold: int | None = Field(
        default=None,
        gt=0,
        description="optional, flush early once this many calls are pending",
    )
    force_batch_for_single_call: bool = Field(
        default=False,
        description="route a lone drained call through the batch resolver as well",
    )
    error_policy: ErrorPolicy = Field(
        default=ErrorPolicy.preserve,
        description="settle callers with the original error, or wrap it in BatchedCallError",
    )
    payload_shape: PayloadShape | None = Field(
        default=None,
        description="optional, overrides the payload shape detected from the operation signature",
    )

    def resolve_flush_interval_ms(self, *, has_batch_resolver: bool) -> int:
        """
        Return the effective flush interval.

        Parameters
        ----------
        has_batch_resolver : bool
            Whether a batch resolver is bound to the function.

        Returns
        -------
        int
            Configured interval, or the default for the resolver setup.
        """
        if self.flush_interval_ms is not None:
            return self.flush_interval_ms
        return DEFAULT_FLUSH_INTERVAL_MS if has_batch_resolver else 0
