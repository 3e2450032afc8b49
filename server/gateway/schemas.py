# ─────────────────────────────────────────────────────────────────────────────
# Pydantic v2 Request / Response Schemas
# ─────────────────────────────────────────────────────────────────────────────


from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gateway.encoding import encode_document


class PlayerUpdate(BaseModel):
    """Body of PUT /v1/player-data/update/{id}. Every field is optional.

    Omitted fields are written as NULL, exactly like fields sent as null.
    """

    model_config = ConfigDict(extra="ignore")

    points: int | None = Field(None, description="Opaque numeric score")
    inventory: Any = Field(None, description="Arbitrary JSON document")
    challenges: Any = Field(None, description="Arbitrary JSON document")

    @field_validator("inventory", "challenges")
    @classmethod
    def document_must_be_storable(cls, v: Any) -> Any:
        # 1e400 parses to inf and NaN is accepted by the body parser;
        # neither can be written back as JSON text.
        encode_document(v)
        return v


class PlayerRecord(BaseModel):
    """Body of GET /v1/player-data/{id}."""

    points: int | None = None
    challenges: Any = None
    inventory: Any = None


class StatusResponse(BaseModel):
    status: str
