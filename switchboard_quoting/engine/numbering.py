"""Sequential quote numbers of the form ``Q-<integer>``."""

import re
from typing import Iterable

QUOTE_NUMBER_PATTERN = re.compile(r"^Q-(\d+)$")
QUOTE_NUMBER_PREFIX = "Q-"


def parse_quote_number(quote_number: str | None) -> int | None:
    match = QUOTE_NUMBER_PATTERN.match(quote_number or "")
    return int(match.group(1)) if match else None


def next_quote_number(existing: Iterable[str | None], floor: int = 1000) -> str:
    """
    Allocate the number after the highest existing ``Q-<n>``.

    Numbers not matching the pattern are ignored. With no numbers at or
    above ``floor`` the first allocation is ``Q-<floor + 1>``.
    """
    highest = floor
    for quote_number in existing:
        number = parse_quote_number(quote_number)
        if number is not None and number > highest:
            highest = number
    return f"{QUOTE_NUMBER_PREFIX}{highest + 1}"
