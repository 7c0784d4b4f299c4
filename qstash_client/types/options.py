"""
Publish and transport option types.
"""

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field, model_validator

from qstash_client.constants import MIN_DURATION_SECONDS
from qstash_client.errors import ConfigurationError


class PublishOptions(BaseModel):
    """
    Options for an individual publish request.

    Note: delays and schedules are applied by the broker, not the client.
    See https://crontab.guru/ for help with the schedule format.
    """

    model_config = ConfigDict(frozen=True)

    delay: timedelta | None = Field(default=None, description="Delay before delivery")
    schedule: str | None = Field(default=None, description="Cron schedule expression")
    retries: int | None = Field(default=None, ge=0, description="Broker delivery retries")
    content_based_deduplication: bool = Field(
        default=False,
        description="Let the broker deduplicate on the message content. "
        "This replaces the generated deduplication id and can drop messages.",
    )

    @property
    def has_delay(self) -> bool:
        return self.delay is not None and self.delay > timedelta(0)


class BackoffPolicy(BaseModel):
    """
    Exponential backoff bounds for the retrying transport, in seconds.

    Out of range bounds raise ConfigurationError.
    """

    model_config = ConfigDict(frozen=True)

    min_backoff: float
    max_backoff: float
    retries: int

    @model_validator(mode="after")
    def _check_bounds(self) -> "BackoffPolicy":
        if self.min_backoff < MIN_DURATION_SECONDS:
            raise ConfigurationError("min back off must be at least 1 millisecond")
        if self.max_backoff < MIN_DURATION_SECONDS:
            raise ConfigurationError("max back off must be at least 1 millisecond")
        if self.min_backoff > self.max_backoff:
            raise ConfigurationError("min back off must be less than or equal to max back off")
        if self.retries < 0:
            raise ConfigurationError("retries must be at least 0")
        return self

    @property
    def attempts(self) -> int:
        """Total number of attempts, the first one included."""
        return self.retries + 1
