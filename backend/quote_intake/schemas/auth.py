from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoginIn(BaseModel):
    model_config = ConfigDict(extra='ignore')

    # Plain string: the configured admin address may use a special-use domain
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=256)

    @field_validator('email')
    @classmethod
    def looks_like_address(cls, v: str) -> str:
        local, sep, domain = v.strip().rpartition('@')
        if not sep or not local or not domain or ' ' in v.strip():
            raise ValueError('not an email address')
        return v


class TokenOut(BaseModel):
    model_config = ConfigDict(extra='forbid')

    token: str
