# Overview: Numbering pattern rendering and document number parsing.

"""
Numbering templates

A template mixes literal text with placeholders:

    {{YYYY}}   4-digit year          FAC-{{YYYY}}-{{SEQ:5}}  -> FAC-2025-00007
    {{YY}}     2-digit year          BL-{{YY}}{{MM}}-{{SEQ:4}} -> BL-2503-0012
    {{MM}}     zero-padded month
    {{DD}}     zero-padded day
    {{SEQ:n}}  running number, zero-padded to n digits, never truncated

Exactly one {{SEQ:n}} with n >= 1 is required.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


SEQ_PLACEHOLDER = re.compile(r"\{\{SEQ:(\d+)\}\}")
TRAILING_DIGITS = re.compile(r"(\d+)$")


class TemplateError(ValueError):
    """Raised when a numbering template is malformed."""


@dataclass(frozen=True)
class NumberShape:
    """A document number split on its trailing digits."""
    prefix: str
    value: int
    padding: int

    def format(self, value: int) -> str:
        return format_number(self.prefix, value, self.padding)


def sequence_width(template: str) -> int:
    matches = SEQ_PLACEHOLDER.findall(template or "")
    if not matches:
        raise TemplateError(f"template {template!r} has no {{{{SEQ:n}}}} placeholder")
    if len(matches) > 1:
        raise TemplateError(f"template {template!r} has more than one {{{{SEQ:n}}}} placeholder")
    width = int(matches[0])
    if width < 1:
        raise TemplateError(f"template {template!r} has a sequence width below 1")
    return width


def render(template: str, year: int, month: int, sequence_value: int, day: int = 1) -> str:
    width = sequence_width(template)

    result = template
    result = result.replace("{{YYYY}}", f"{year:04d}")
    result = result.replace("{{YY}}", f"{year % 100:02d}")
    result = result.replace("{{MM}}", f"{month:02d}")
    result = result.replace("{{DD}}", f"{day:02d}")

    # str.zfill pads but never truncates, so 123456 at width 5 stays whole
    return SEQ_PLACEHOLDER.sub(str(sequence_value).zfill(width), result)


def split_number(number: str | None) -> NumberShape | None:
    """Split "PAFO-2025-00012" into ("PAFO-2025-", 12, 5); None without trailing digits."""
    if not number:
        return None
    match = TRAILING_DIGITS.search(number)
    if not match:
        return None
    digits = match.group(1)
    return NumberShape(prefix=number[: -len(digits)], value=int(digits), padding=len(digits))


def format_number(prefix: str, value: int, padding: int) -> str:
    return f"{prefix}{str(value).zfill(padding)}"
