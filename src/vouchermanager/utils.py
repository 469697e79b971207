from datetime import UTC, datetime


def now() -> datetime:
    return datetime.now(UTC)


def first_forwarded_ip(header_value: str | None) -> str | None:
    """Return the originating client from an X-Forwarded-For value (``client, proxy1, ...``)."""
    if not header_value:
        return None
    ip = header_value.split(",")[0].strip()
    return ip or None
