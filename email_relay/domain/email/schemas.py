"""Email domain schemas - Pydantic models for the relay's request/response shapes"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EmailSendRequest(BaseModel):
    """
    Inbound send request.

    Required fields are optional at the schema level so that a missing
    to/subject/body produces the relay's own 400 message rather than a
    generic validation error.
    """

    model_config = ConfigDict(populate_by_name=True)

    to: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    sender: Optional[str] = Field(default=None, alias="from")
    cc: Optional[list[str]] = None
    bcc: Optional[list[str]] = None
    replyTo: Optional[str] = None

    @field_validator("cc", "bcc")
    @classmethod
    def drop_blank_recipients(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return v
        return [address for address in v if address and address.strip()]


class EmailSendResult(BaseModel):
    """Uniform relay result"""

    success: bool
    messageId: Optional[str] = None
    error: Optional[str] = None
    details: Optional[Any] = None


class BulkEmailRequest(BaseModel):
    emails: list[EmailSendRequest]


class BulkEmailFailure(BaseModel):
    email: EmailSendRequest
    error: str


class BulkEmailResponse(BaseModel):
    success: list[EmailSendResult]
    failed: list[BulkEmailFailure]


class EmailPreviewRequest(BaseModel):
    body: str


class EmailPreviewResponse(BaseModel):
    html: str
    text: str
