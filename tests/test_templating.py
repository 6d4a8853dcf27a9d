"""
Tests for subject and body template evaluation.
"""

import logging

from templating import DEFAULT_BODY, check_syntax, evaluate


class TestEvaluate:

    def test_interpolation(self):
        data = {"form": {"formId": ["test"]}, "config": {}}

        assert evaluate("Subject {{ form.formId[0] }}", data) == "Subject test"

    def test_iteration_over_values(self):
        data = {"form": {"colour": ["red", "blue"]}, "config": {}}

        out = evaluate("{% for c in form.colour %}[{{ c }}]{% endfor %}", data)

        assert out == "[red][blue]"

    def test_no_html_escaping(self):
        data = {"form": {"msg": ["<b>&</b>"]}, "config": {}}

        assert evaluate("{{ form.msg[0] }}", data) == "<b>&</b>"

    def test_missing_field_renders_empty(self):
        assert evaluate("[{{ form.nothing }}]", {"form": {}, "config": {}}) == "[]"

    def test_syntax_error_yields_empty(self, caplog):
        with caplog.at_level(logging.ERROR):
            assert evaluate("Hi {{ form.x ", {"form": {}}) == ""

        assert "Cannot parse template" in caplog.text

    def test_render_error_yields_partial(self, caplog):
        with caplog.at_level(logging.ERROR):
            out = evaluate("before {{ 1 / 0 }} after", {"form": {}})

        assert out == "before "
        assert "Cannot execute template" in caplog.text

    def test_injected_logger_is_used(self, caplog):
        log = logging.getLogger("custom.mailer")

        with caplog.at_level(logging.ERROR):
            evaluate("{% endfor %}", {}, log)

        assert [r.name for r in caplog.records] == ["custom.mailer"]


class TestDefaultBody:

    def test_single_field(self):
        out = evaluate(DEFAULT_BODY, {"form": {"formId": ["f"], "field1": ["value1"]}})

        assert out == "field1: value1\n\n"

    def test_reserved_fields_skipped(self):
        form = {
            "ok": ["x"],
            "err": ["x"],
            "formId": ["x"],
            "recipient": ["x"],
            "name": ["Ann"],
        }

        assert evaluate(DEFAULT_BODY, {"form": form}) == "name: Ann\n\n"

    def test_multiple_values_keep_order(self):
        form = {"b": ["2"], "a": ["1", "3"]}

        assert evaluate(DEFAULT_BODY, {"form": form}) == "b: 2\n\na: 1\n\n3\n\n"

    def test_empty_form(self):
        assert evaluate(DEFAULT_BODY, {"form": {}}) == ""


class TestCheckSyntax:

    def test_valid(self):
        assert check_syntax(DEFAULT_BODY) is None

    def test_invalid(self):
        error = check_syntax("line one\n{% for x in %}")

        assert error is not None
        assert error.startswith("line 2:")
