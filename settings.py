import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

ENV_PREFIX = "POSTMAIL_"


class Settings(BaseModel):
    cfg: Optional[str] = None
    debug: bool = False

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_pwd: Optional[str] = None
    smtp_cert: Optional[str] = None
    smtp_key: Optional[str] = None
    smtp_ca: Optional[str] = None

    http_port: int = 80
    http_cert: Optional[str] = None
    http_key: Optional[str] = None
    http_ca: Optional[str] = None

    def validate_smtp(self):
        if not self.smtp_host or not self.smtp_port:
            raise ValueError(f"{ENV_PREFIX}SMTP_HOST and {ENV_PREFIX}SMTP_PORT must be set")


def load_settings(environ=None) -> Settings:
    """Build settings from POSTMAIL_* environment variables (and .env, if present)."""
    if environ is None:
        load_dotenv()
        environ = os.environ

    values = {}
    for name in Settings.model_fields:
        value = environ.get(ENV_PREFIX + name.upper())
        if value:
            values[name] = value
    return Settings(**values)
