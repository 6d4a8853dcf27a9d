import logging
from typing import Optional

import aiosmtplib

from models import OutboundMessage

logger = logging.getLogger(__name__)

SMTPS_PORT = 465


class SmtpTransport:
    """Delivers messages through an SMTP relay. Errors propagate to the caller."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_cert: Optional[str] = None,
        client_key: Optional[str] = None,
        ca_file: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.client_cert = client_cert
        self.client_key = client_key
        self.ca_file = ca_file

    def _client(self) -> aiosmtplib.SMTP:
        implicit_tls = self.port == SMTPS_PORT
        return aiosmtplib.SMTP(
            hostname=self.host,
            port=self.port,
            use_tls=implicit_tls,
            # None means upgrade when the server offers STARTTLS
            start_tls=False if implicit_tls else None,
            client_cert=self.client_cert or None,
            client_key=self.client_key or None,
            cert_bundle=self.ca_file or None,
        )

    async def send(self, message: OutboundMessage) -> None:
        msg = message.to_email_message()
        async with self._client() as smtp:
            if self.username:
                await smtp.login(self.username, self.password or "")
            await smtp.send_message(msg)
        logger.info("📨 Email sent via %s:%d to %s", self.host, self.port, ", ".join(message.to))

    # Lets an instance be passed wherever a send callable is expected
    __call__ = send
