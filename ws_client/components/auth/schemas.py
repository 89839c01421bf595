"""
Response bodies of the application server's HTTP endpoints.
Unknown fields are ignored.
"""

from pydantic import BaseModel, Field, field_validator


class ChannelAuthResponse(BaseModel):
    """Body of `POST /api/b/broadcasting/auth`."""
    auth: str = Field(min_length=1)


class ProfileData(BaseModel):
    id: int | str

    @field_validator("id")
    @classmethod
    def id_not_blank(cls, value: int | str) -> int | str:
        if isinstance(value, str) and not value.strip():
            raise ValueError("id is blank")
        return value


class ProfileResponse(BaseModel):
    """Body of `GET /api/v2/profile`; only `data.id` is used."""
    data: ProfileData
