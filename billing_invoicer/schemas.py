from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    code: str = Field(examples=["PAYLOAD_TOO_LARGE"])
    message: str = Field(examples=["Payload Too Large"])
    error: str = Field(examples=["Payload Too Large"])
    request_id: Optional[str] = Field(default=None, examples=["c752262e-cf42-4075-917b-95ffcb5ceeeb"])
    details: Any = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "PAYLOAD_TOO_LARGE",
                "message": "Payload Too Large",
                "error": "Payload Too Large",
                "request_id": "c752262e-cf42-4075-917b-95ffcb5ceeeb",
                "details": {"max_request_body_bytes": 10485760, "content_length": 10485761},
            }
        }
    )


class RouteNotFoundResponse(BaseModel):
    error: str = Field(examples=["Route not found"])
    message: str = Field(examples=["The endpoint /no-such-route does not exist"])


class HealthResponse(BaseModel):
    status: str = Field(examples=["OK"])
    message: str = Field(examples=["Billing Invoicer API is running"])
    timestamp: str = Field(examples=["2024-01-01T00:00:00.000Z"])
