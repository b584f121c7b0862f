from datetime import datetime, timezone


def utcnow() -> datetime:
    # naive UTC; SQLite drops tzinfo on the way back so compare like with like
    return datetime.now(timezone.utc).replace(tzinfo=None)
