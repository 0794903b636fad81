"""
Push configuration models — FCM service account plus target device token.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

PEM_MARKER = "BEGIN PRIVATE KEY"


class ServiceCredential(BaseModel):
    """Google service-account JSON (the subset we use; extra keys are kept)."""
    project_id: str
    private_key: str
    client_email: str
    private_key_id: Optional[str] = None
    client_id: Optional[str] = None
    token_uri: Optional[str] = None
    type: Optional[str] = None

    model_config = {"extra": "allow"}

    @field_validator("project_id", "private_key", "client_email")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        return v


class PushConfig(BaseModel):
    service_credential: ServiceCredential = Field(alias="serviceAccount")
    device_token: str = Field(alias="deviceToken")

    model_config = {"populate_by_name": True}

    @field_validator("device_token")
    @classmethod
    def _token_present(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("device token must not be blank")
        return v

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
