"""
Session model: a bounded window of continuous activity for one client.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SessionInfo(BaseModel):
    """
    Resolved session for the current request.

    The same value is what the caller persists and passes back as the prior
    record on the next activity; last_activity_at is the gap reference.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    session_id: str = Field(min_length=1)
    is_new_session: bool
    session_start_time: int = Field(ge=0)
    last_activity_at: int = Field(ge=0)

    @model_validator(mode="after")
    def _start_not_after_activity(self):
        if self.session_start_time > self.last_activity_at:
            raise ValueError("session_start_time cannot be after last_activity_at")
        return self
