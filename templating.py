"""
Template evaluation for email subjects and bodies.

Templates use Jinja2 syntax and are rendered against a context with two
keys: ``form`` (submitted fields, each a list of values) and ``config``
(the form configuration, keyed as in the YAML file). Errors never abort a
request: they are logged and whatever was rendered so far is returned.
"""

import logging
from typing import Any, Dict, Optional

from jinja2 import Environment
from jinja2.exceptions import TemplateSyntaxError

logger = logging.getLogger(__name__)

# One "<name>: " line per field, each value followed by a blank line
DEFAULT_BODY = (
    '{% for key, values in form.items() if key not in ("ok", "err", "formId", "recipient") %}'
    "{{ key }}: {% for value in values %}{{ value }}\n\n{% endfor %}"
    "{% endfor %}"
)

_env = Environment(autoescape=False, keep_trailing_newline=True)


def evaluate(template: str, data: Dict[str, Any], log: Optional[logging.Logger] = None) -> str:
    log = log or logger
    try:
        compiled = _env.from_string(template)
    except TemplateSyntaxError as e:
        log.error("❌ Cannot parse template: %s", e)
        return ""

    out = []
    try:
        for chunk in compiled.generate(data):
            out.append(chunk)
    except Exception as e:
        log.error("❌ Cannot execute template: %s", e)
    return "".join(out)


def check_syntax(template: str) -> Optional[str]:
    """Return the syntax error message for a template, or None if it parses."""
    try:
        _env.parse(template)
    except TemplateSyntaxError as e:
        return f"line {e.lineno}: {e.message}"
    return None
