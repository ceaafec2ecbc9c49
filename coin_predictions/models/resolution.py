"""
Resolution pass result models.

``ResolveResult`` is what the store reports for one conditional write;
``ResolutionSummary`` is what a whole pass reports to its caller.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class ResolveResult(StrEnum):
    """Outcome of a compare-and-set resolution write."""

    RESOLVED = "resolved"
    ALREADY_RESOLVED = "already_resolved"


class BatchOutcome(StrEnum):
    """Coarse classification of a resolution pass."""

    EMPTY = "empty"
    COMPLETE = "complete"
    PARTIAL = "partial"


class ResolutionSummary(BaseModel):
    """
    Summary of one resolution pass.

    Serialized with camelCase keys for the HTTP trigger response.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "totalEligible": 3,
                "resolvedThisRun": 2,
                "errorsEncountered": 1,
                "errorMessages": [
                    "Could not fetch price for dogecoin (prediction ID: 507f1f77bcf86cd799439011)"
                ],
                "alreadyResolved": 0,
                "deferred": 0,
                "timedOut": False,
                "outcome": "partial",
                "message": "Prediction resolution finished with 1 error(s).",
            }
        },
    )

    total_eligible: int = Field(default=0, ge=0, description="Eligible predictions examined")
    resolved_this_run: int = Field(default=0, ge=0, description="Predictions resolved by this pass")
    errors_encountered: int = Field(default=0, ge=0, description="Soft errors recorded")
    error_messages: list[str] = Field(default_factory=list)
    already_resolved: int = Field(
        default=0, ge=0, description="Items resolved concurrently by another pass"
    )
    deferred: int = Field(
        default=0, ge=0, description="Items left pending because the deadline was reached"
    )
    timed_out: bool = Field(default=False, description="Whether the pass hit its deadline")

    @computed_field
    @property
    def outcome(self) -> BatchOutcome:
        """Nothing to do, fully processed, or processed with errors."""
        if self.total_eligible == 0:
            return BatchOutcome.EMPTY
        if self.errors_encountered or self.deferred:
            return BatchOutcome.PARTIAL
        return BatchOutcome.COMPLETE

    @computed_field
    @property
    def message(self) -> str:
        """Human readable one-line summary."""
        if self.outcome is BatchOutcome.EMPTY:
            return "No pending predictions to process."
        if self.outcome is BatchOutcome.COMPLETE:
            return "Prediction resolution process finished."
        parts = []
        if self.errors_encountered:
            parts.append(f"{self.errors_encountered} error(s)")
        if self.deferred:
            parts.append(f"{self.deferred} deferred by deadline")
        return f"Prediction resolution finished with {', '.join(parts)}."

    def record_resolved(self) -> None:
        self.resolved_this_run += 1

    def record_already_resolved(self) -> None:
        self.already_resolved += 1

    def record_error(self, message: str) -> None:
        self.errors_encountered += 1
        self.error_messages.append(message)
