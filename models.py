import re
from email.message import EmailMessage
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FormConfig(BaseModel):
    """Settings for one form, as found under ``forms.<formId>`` in the YAML config."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_address: str = Field("", alias="from")
    domain: str = ""
    subject: str = ""
    recipients: List[str] = Field(default_factory=list)
    allow_custom_recipient: bool = Field(False, alias="allowCustomRecipient")
    honeypot: str = ""
    body: str = ""

    @field_validator("from_address", "domain", "subject", "honeypot", "body", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return "" if value is None else value

    @field_validator("recipients", mode="before")
    @classmethod
    def _split_recipients(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [r for r in re.split(r"[,\s]+", value) if r]
        return value

    @field_validator("allow_custom_recipient", mode="before")
    @classmethod
    def _none_is_false(cls, value):
        return False if value is None else value

    def template_data(self) -> Dict[str, Any]:
        # Templates see the same keys as the YAML file
        return self.model_dump(by_alias=True)


class OutboundMessage(BaseModel):
    from_address: str
    to: List[str]
    subject: str
    body: str
    content_type: str = "text/plain"

    def to_email_message(self) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.from_address
        msg["To"] = ", ".join(self.to)
        msg["Subject"] = self.subject
        # set_content() on a str is always text/*
        msg.set_content(self.body, subtype=self.content_type.split("/", 1)[1])
        return msg
