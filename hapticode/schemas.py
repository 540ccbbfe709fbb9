"""Request/response models — the contract between the editor page and the backend."""

from pydantic import BaseModel, ConfigDict, field_validator


class AssistantRequest(BaseModel):
    """Incoming request body.

    Which fields are used depends on `mode`:
        generate       — text (the spoken request)
        simplify_code  — code
        explain_error  — text (the error message)
        execute_code   — code
        debug          — code, breakpoints
    """

    model_config = ConfigDict(extra="ignore")

    mode: str
    text: str | None = None
    code: str | None = None
    breakpoints: list[int] = []

    @field_validator("breakpoints", mode="before")
    @classmethod
    def null_breakpoints_mean_empty(cls, v):
        return [] if v is None else v


class AssistantResponse(BaseModel):
    """Response body. `result` always carries displayable text; failures
    are reported as an "Error: ..." string rather than a missing field."""

    result: str
    modelUsed: str | None = None
