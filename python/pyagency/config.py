"""Agent configuration."""

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, ValidationError, field_validator

from pyagency.exceptions import BuilderError
from pyagency.http import Url
from pyagency.redirect import DEFAULT_MAX_REDIRECTS


class AgentConfig(BaseModel):
    """Validated agent settings. Built by AgentBuilder or agent(**kwargs)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_redirects: NonNegativeInt = DEFAULT_MAX_REDIRECTS
    timeout: timedelta | None = None
    base_url: str | None = None
    default_headers: dict[str, str] = Field(default_factory=dict)
    user_agent: str | None = None
    error_for_status: bool = False

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: timedelta | None) -> timedelta | None:
        if value is not None and value <= timedelta(0):
            raise ValueError("timeout must be positive")
        return value

    @field_validator("base_url")
    @classmethod
    def _valid_base_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        url = str(Url(value))
        if not url.endswith("/"):
            raise ValueError("base_url must end with a trailing slash '/'")
        return url

    @classmethod
    def create(cls, **values: object) -> "AgentConfig":
        """Validate `values`, raising BuilderError instead of pydantic's ValidationError."""
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            causes = [{"message": f"{'.'.join(map(str, err['loc']))}: {err['msg']}"} for err in e.errors()]
            raise BuilderError("invalid agent configuration", {"causes": causes}) from e
