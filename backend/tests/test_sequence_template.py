# Overview: Pytest coverage for numbering template rendering and number parsing.

import pytest

from docstock.services.sequence_template import (
    NumberShape,
    TemplateError,
    format_number,
    render,
    sequence_width,
    split_number,
)


class TestRender:
    def test_year_and_padded_sequence(self):
        assert render("FAC-{{YYYY}}-{{SEQ:5}}", 2025, 3, 7) == "FAC-2025-00007"

    def test_value_wider_than_padding_is_not_truncated(self):
        assert render("PAFO-{{YYYY}}-{{SEQ:5}}", 2025, 3, 123456) == "PAFO-2025-123456"

    def test_short_year_and_month(self):
        assert render("BL-{{YY}}{{MM}}-{{SEQ:4}}", 2025, 3, 12) == "BL-2503-0012"

    def test_day_placeholder(self):
        assert render("T{{YYYY}}{{MM}}{{DD}}-{{SEQ:3}}", 2025, 11, 4, day=9) == "T20251109-004"

    def test_sequence_only(self):
        assert render("{{SEQ:4}}", 2025, 1, 1) == "0001"

    def test_deterministic(self):
        assert render("FAC-{{YYYY}}-{{SEQ:5}}", 2025, 3, 7) == render("FAC-{{YYYY}}-{{SEQ:5}}", 2025, 3, 7)

    @pytest.mark.parametrize("template", [
        "FAC-{{YYYY}}",
        "FAC-{{SEQ:3}}-{{SEQ:3}}",
        "FAC-{{SEQ:0}}",
        "",
    ])
    def test_malformed_templates_rejected(self, template):
        with pytest.raises(TemplateError):
            render(template, 2025, 1, 1)

    def test_sequence_width(self):
        assert sequence_width("PAFO-{{YYYY}}-{{SEQ:5}}") == 5


class TestSplitNumber:
    def test_split_trailing_digits(self):
        assert split_number("PAFO-2025-00012") == NumberShape("PAFO-2025-", 12, 5)

    def test_split_digits_only(self):
        assert split_number("0042") == NumberShape("", 42, 4)

    def test_no_trailing_digits(self):
        assert split_number("MANUAL-A") is None
        assert split_number("") is None
        assert split_number(None) is None

    def test_format_keeps_padding(self):
        shape = split_number("PAFO-2025-00012")
        assert shape.format(13) == "PAFO-2025-00013"
        assert format_number("PAFO-2025-", 100000, 5) == "PAFO-2025-100000"
