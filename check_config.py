#!/usr/bin/env python3
"""
Form configuration checker

Reads the YAML form configuration and reports forms that cannot work:
- no domain (the form is treated as unknown and every post gets 404)
- no fixed recipients while custom recipients are disallowed (every post gets 400)
- subject or body templates that do not parse

Usage:
    python check_config.py                    # Check /config/config.yml or config/config.yml
    python check_config.py path/to/config.yml # Check a specific file
"""

import sys

from pydantic import ValidationError

from form_config import ConfigError, default_config_path, load_forms
from models import FormConfig
from templating import check_syntax


def form_problems(form_data):
    """Return a list of problems for one form's raw settings."""
    if not isinstance(form_data, dict):
        return ["settings must be a mapping"]
    try:
        form = FormConfig.model_validate(form_data)
    except ValidationError as e:
        return [f"invalid settings: {err['loc'][0]}: {err['msg']}" for err in e.errors()]

    problems = []
    if not form.domain:
        problems.append("no domain, form will not be found")
    if not form.recipients and not form.allow_custom_recipient:
        problems.append("no recipients and custom recipients not allowed")
    for name, template in (("subject", form.subject), ("body", form.body)):
        if template:
            error = check_syntax(template)
            if error:
                problems.append(f"{name} template: {error}")
    return problems


def check(path):
    """Print a report for every form in the file. Returns the number of problems."""
    forms = load_forms(path)
    print(f"📋 {path}: {len(forms)} form(s)")

    total = 0
    for form_id, form_data in forms.items():
        problems = form_problems(form_data)
        total += len(problems)
        if problems:
            print(f"❌ {form_id}")
            for problem in problems:
                print(f"   - {problem}")
        else:
            form = FormConfig.model_validate(form_data)
            custom = f" (+ custom @{form.domain})" if form.allow_custom_recipient else ""
            print(f"✅ {form_id} -> {', '.join(form.recipients) or '-'}{custom}")
    return total


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) > 1:
        print("Usage:")
        print("  python check_config.py [config.yml]")
        return 2

    path = argv[0] if argv else default_config_path()
    try:
        problems = check(path)
    except ConfigError as e:
        print(f"❌ {e}")
        return 1
    return 1 if problems else 0


if __name__ == "__main__":
    sys.exit(main())
