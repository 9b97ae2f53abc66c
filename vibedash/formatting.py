"""Display formatting helpers for transcript timestamps, token usage and text."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timezone, tzinfo
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from vibedash import config
from vibedash.transcripts.records import TokenUsage

logger = logging.getLogger("vibedash")

INVALID_DATE = "Invalid Date"


def _resolve_tz(tz: tzinfo | str | None) -> tzinfo:
    if isinstance(tz, tzinfo):
        return tz
    name = tz or config.DISPLAY_TIMEZONE
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown display timezone %r; using UTC", name)
        return timezone.utc


def parse_timestamp(raw: Any) -> datetime | None:
    """Parse ISO strings, datetimes or epoch milliseconds into an aware datetime."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
    if isinstance(raw, (int, float)):
        if not math.isfinite(raw):
            return None
        try:
            return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(raw, str):
        return None
    cleaned = raw.strip()
    if not cleaned:
        return None
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError:
        for fmt in ("%Y/%m/%d %H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y/%m/%d", "%m/%d/%Y"):
            try:
                parsed = datetime.strptime(cleaned, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _format_local(raw: Any, tz: tzinfo | str | None, fmt: str) -> str:
    parsed = parse_timestamp(raw)
    if parsed is None:
        return INVALID_DATE
    try:
        return parsed.astimezone(_resolve_tz(tz)).strftime(fmt)
    except (OverflowError, ValueError):
        # Shifting a value at the datetime range limits falls outside years 1..9999.
        return INVALID_DATE


def format_timestamp(raw: Any, tz: tzinfo | str | None = None) -> str:
    return _format_local(raw, tz, "%H:%M:%S")


def format_date(raw: Any, tz: tzinfo | str | None = None) -> str:
    return _format_local(raw, tz, "%Y-%m-%d")


def format_token_usage(usage: Any) -> str:
    """Summarize token usage as ``In: 1,234 | Out: 56 | Cache: 7``.

    Absent or zero counts are left out; no usage gives an empty string.
    """
    if not usage:
        return ""
    parsed = TokenUsage.from_raw(usage)
    if parsed is None:
        return ""
    parts = []
    if parsed.inputTokens:
        parts.append(f"In: {parsed.inputTokens:,}")
    if parsed.outputTokens:
        parts.append(f"Out: {parsed.outputTokens:,}")
    if parsed.cacheReadInputTokens:
        parts.append(f"Cache: {parsed.cacheReadInputTokens:,}")
    return " | ".join(parts)


def calculate_duration(start_raw: Any, end_raw: Any) -> str | None:
    start = parse_timestamp(start_raw)
    end = parse_timestamp(end_raw)
    if start is None or end is None:
        return None
    seconds = (end - start).total_seconds()
    if seconds < 0:
        return None
    if seconds < 1:
        return f"{int(round(seconds * 1000))}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    total = int(seconds)
    if total < 3600:
        return f"{total // 60}m {total % 60}s"
    return f"{total // 3600}h {(total % 3600) // 60}m"


def relative_time(raw: Any, now: datetime | None = None) -> str:
    parsed = parse_timestamp(raw)
    if parsed is None:
        return ""
    current = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
    seconds = max(0, int((current - parsed).total_seconds()))
    days, remainder = divmod(seconds, 86400)
    if days:
        return f"{days}d ago"
    if remainder >= 3600:
        return f"{remainder // 3600}h ago"
    if remainder >= 60:
        return f"{remainder // 60}m ago"
    return f"{remainder}s ago"


def format_bytes(size: int | float | None) -> str:
    if not size or size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    index = max(0, min(int(math.floor(math.log(size, 1024))), len(units) - 1))
    value = round(size / (1024 ** index), 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[index]}"


def truncate_text(text: str | None, max_length: int = 100) -> str:
    value = text or ""
    if len(value) <= max_length:
        return value
    return value[:max_length] + "..."


def extract_file_name(path: str | None) -> str:
    value = path or ""
    return value.rstrip("/").split("/")[-1] or value


def extract_command(command: str | None) -> str:
    """First word of a shell command line."""
    value = command or ""
    parts = value.split()
    return parts[0] if parts else value


def count_lines(text: str | None) -> int:
    return len((text or "").split("\n"))
