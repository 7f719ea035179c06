"""Board display-name prefixes by board type."""

BOARD_TYPE_PREFIXES: dict[str, str] = {
    "Main Switchboard (MSB)": "MSB-",
    "Main Distribution Board (MDB)": "MDB-",
    "Distribution Board (DB)": "DB-",
    "Prewired Whole Current Meter Panel": "WC-",
    "Supply Authority CT Metering Enclosure 200-400A": "CT-",
    "Tee-Off-Box Riser": "TOB-",
    "Tee-Off-Box End of Run": "TOB-",
    "Remote Meter Panel with Test Block": "RMP-",
}

KNOWN_PREFIXES = tuple(sorted(set(BOARD_TYPE_PREFIXES.values()), key=len, reverse=True))


def prefix_for(board_type: str | None) -> str | None:
    return BOARD_TYPE_PREFIXES.get(board_type or "")


def apply_board_prefix(board_type: str | None, name: str | None) -> str:
    """
    Normalize a board name to carry its type prefix.

    Empty names become "<PREFIX>01", a correct prefix is kept, a different
    known prefix is swapped, anything else gets the prefix prepended. Types
    without a prefix leave the name alone.
    """
    trimmed = (name or "").strip()
    prefix = prefix_for(board_type)
    if prefix is None:
        return trimmed
    if not trimmed:
        return f"{prefix}01"
    if trimmed.startswith(prefix):
        return trimmed
    for other in KNOWN_PREFIXES:
        if trimmed.startswith(other):
            return prefix + trimmed[len(other):]
    return prefix + trimmed
