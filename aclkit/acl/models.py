"""Decision data models."""

from pydantic import BaseModel, Field


class Decision(BaseModel):
    """Result of an authorization check, with an explanation."""

    allowed: bool = Field(description="Whether the capability is granted")
    resource: str = Field(description="Resource that was checked")
    instance: str = Field(description="Instance that was checked")
    capability: str = Field(description="Capability that was checked")
    reason: str = Field(default="", description="Explanation of decision")
    matched_filters: list[str] = Field(
        default_factory=list,
        description="Instance filters ('*' and/or the exact instance) granting the capability",
    )
