"""Shared validators for settings and domain models."""

from discord_audio_queue.domain.shared.messages import ErrorMessages


def validate_discord_snowflake(value: int) -> int:
    """Validate a Discord snowflake ID.

    Discord snowflake IDs are 64-bit unsigned integers representing unique
    identifiers for users, guilds, channels, messages, etc.

    Raises:
        ValueError: If the snowflake ID is invalid.
    """
    if value <= 0:
        raise ValueError(ErrorMessages.INVALID_SNOWFLAKE)
    if value >= 2**64:
        raise ValueError(ErrorMessages.SNOWFLAKE_TOO_LARGE)
    return value


def parse_id_list(value: object) -> tuple[int, ...]:
    """Accept a tuple, a list, a single int or a comma-separated string of IDs."""
    if value is None or value == "":
        return ()
    if isinstance(value, int):
        items: list[object] = [value]
    elif isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        raise ValueError(ErrorMessages.INVALID_ID_LIST)

    ids = tuple(int(item) for item in items)  # type: ignore[call-overload]
    for snowflake in ids:
        validate_discord_snowflake(snowflake)
    return ids
