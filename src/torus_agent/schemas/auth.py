"""Schemas for the signed challenge handshake."""

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from torus_agent.utils.time import ensure_utc


class SignedPayload(BaseModel):
    """Body of the auth route: a wallet signature over a challenge document."""

    payload: str = Field(..., description="Challenge document JSON, hex encoded")
    signature: str = Field(..., description="Wallet signature over the payload bytes, hex encoded")
    address: str = Field(..., description="SS58 address of the signing wallet")


class ChallengeDocument(BaseModel):
    """Statement signed by the wallet to open a session."""

    statement: str = Field(..., description="Human-readable statement shown by the wallet")
    uri: str = Field(..., description="Origin the challenge was created for")
    nonce: str = Field(..., min_length=1, description="Single-use random value, hex encoded")
    created_at: datetime = Field(
        ...,
        validation_alias=AliasChoices("createdAt", "created"),
        serialization_alias="createdAt",
        description="Creation time of the challenge (ISO-8601)",
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class AuthTokenResponse(BaseModel):
    """Session granted after a successful handshake."""

    token: str = Field(..., description="Signed bearer token")
    authenticationType: Literal["Bearer"] = Field(
        "Bearer",
        description="Scheme to use in the authentication header",
    )
