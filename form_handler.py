import asyncio
import logging
import re
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Dict, List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from models import FormConfig, OutboundMessage
from templating import DEFAULT_BODY, evaluate

logger = logging.getLogger(__name__)

ConfigGetter = Callable[[str], Optional[FormConfig]]
Sender = Callable[[OutboundMessage], Awaitable[None]]

# Every method reaches the handler so that rejections are logged there
ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# A % that does not start a two digit hex escape
BAD_ESCAPE = re.compile(rb"%(?![0-9A-Fa-f]{2})")


def _first(fields: Dict[str, List[str]], key: str) -> str:
    values = fields.get(key)
    return values[0] if values else ""


async def parse_fields(request: Request) -> Dict[str, List[str]]:
    """Collect body and query fields, keeping key order and every value."""
    fields: Dict[str, List[str]] = {}
    if request.headers.get("content-type", "").startswith("application/x-www-form-urlencoded"):
        if BAD_ESCAPE.search(await request.body()):
            raise ValueError("invalid URL escape in body")
    if BAD_ESCAPE.search(request.scope.get("query_string", b"")):
        raise ValueError("invalid URL escape in query")
    form = await request.form()
    for key, value in form.multi_items():
        # File parts are not rendered into mail
        if isinstance(value, str):
            fields.setdefault(key, []).append(value)
    for key, value in request.query_params.multi_items():
        fields.setdefault(key, []).append(value)
    return fields


class Mailer:
    """Handles form posts and sends mails."""

    def __init__(self, config_getter: ConfigGetter, send: Sender, logger: Optional[logging.Logger] = None):
        self.config_getter = config_getter
        self.send = send
        self.log = logger or logging.getLogger(__name__)

    async def handle(self, request: Request) -> Response:
        log = self.log
        ok_url = err_url = ""

        # Failures only redirect once the err URL has been read from the form
        def fail(status_code: int, msg: str, *args) -> Response:
            if err_url:
                log.warning(msg, *args)
                return RedirectResponse(err_url, status_code=status_code)
            log.error(msg, *args)
            return Response(status_code=status_code)

        def succeed() -> Response:
            if ok_url:
                return RedirectResponse(ok_url, status_code=302)
            return Response(status_code=200)

        log.debug("Handling a request")
        if request.method != "POST":
            return fail(405, "Rejecting %s", request.method)

        try:
            fields = await parse_fields(request)
        except (MultiPartException, HTTPException, ValueError) as e:
            return fail(400, "Cannot parse form: %s", e)
        log.debug("Html form: %s", fields)

        # Empty ok/err values stay in the form, like any other field
        ok_url = _first(fields, "ok")
        if ok_url:
            del fields["ok"]
        err_url = _first(fields, "err")
        if err_url:
            del fields["err"]

        # Expect to see these variables in the submitted form
        form_id = _first(fields, "formId")
        log.debug("Form: %s", form_id)

        config = await asyncio.to_thread(self.config_getter, form_id)
        if config is None:
            return fail(404, "No form %s", form_id)

        recipient = _first(fields, "recipient")
        log.debug("Recipient: %s", recipient)
        if "@" in recipient:
            return fail(403, "Invalid recipient: %s", recipient)
        if not config.allow_custom_recipient and recipient:
            return fail(403, "Custom recipient not allowed")

        # The domain always comes from the form config, otherwise anyone
        # could relay mail through us
        if recipient:
            recipient = f"{recipient}@{config.domain}"
        if not recipient and not config.recipients:
            return fail(400, "No recipients")

        if config.honeypot and _first(fields, config.honeypot):
            return fail(406, "Non-empty honeypot")

        data = {"config": config.template_data(), "form": fields}

        to = list(config.recipients)
        if recipient:
            to.append(recipient)

        if config.subject:
            subject = evaluate(config.subject, data, log)
        else:
            subject = f"From {form_id}"
        body = evaluate(config.body or DEFAULT_BODY, data, log)

        message = OutboundMessage(from_address=config.from_address, to=to, subject=subject, body=body)
        log.debug("Sending: %s", message)
        try:
            await self.send(message)
        except Exception as e:
            return fail(500, "Send error: %s", e)

        log.info("✅ Sent %s submission to %s", form_id, ", ".join(to))
        return succeed()


def create_app(mailer: Mailer) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("✅ Form relay ready")
        yield

    app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.add_api_route(
        "/{path:path}",
        mailer.handle,
        methods=ROUTED_METHODS,
        include_in_schema=False,
    )
    return app


def main():
    import uvicorn

    from form_config import YamlConfigGetter, default_config_path
    from settings import load_settings
    from smtp_transport import SmtpTransport

    settings = load_settings()
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    settings.validate_smtp()

    config_path = settings.cfg or default_config_path()
    logger.debug("Reading forms from %s", config_path)

    transport = SmtpTransport(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_pwd,
        client_cert=settings.smtp_cert,
        client_key=settings.smtp_key,
        ca_file=settings.smtp_ca,
    )
    app = create_app(Mailer(config_getter=YamlConfigGetter(config_path), send=transport.send))

    logger.debug("Starting listener")
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.http_port,
        ssl_certfile=settings.http_cert,
        ssl_keyfile=settings.http_key,
        ssl_ca_certs=settings.http_ca,
    )


if __name__ == "__main__":
    main()
