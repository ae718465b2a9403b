from datetime import datetime, timezone


def utc_ts() -> int:
    """Milliseconds since the epoch, UTC."""
    return int(datetime.now(timezone.utc).timestamp() * 1_000)
