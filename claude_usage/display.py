import json
import math
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from rich.console import Console
from rich.text import Text

from claude_usage.models import DISPLAY_BUCKETS, UsageSnapshot

BAR_WIDTH = 28


class UsageRow(NamedTuple):
    label: str
    percent: int
    bar: str
    reset: Optional[str]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def bar(percent: float, width: int = BAR_WIDTH) -> str:
    filled = min(max(_round_half_up(percent / 100 * width), 0), width)
    return "█" * filled + "░" * (width - filled)


def time_until(resets_at: datetime, now: Optional[datetime] = None) -> str:
    """Human-relative time until ``resets_at`` (e.g. '45m', '3h 5m', '2d 4h')."""
    now = now or datetime.now(timezone.utc)
    if resets_at.tzinfo is None:
        resets_at = resets_at.replace(tzinfo=timezone.utc)
    seconds = (resets_at - now).total_seconds()
    if seconds <= 0:
        return "now"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    if hours >= 24:
        return f"{hours // 24}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def usage_rows(snapshot: UsageSnapshot, now: Optional[datetime] = None) -> list[UsageRow]:
    rows = []
    for key, label in DISPLAY_BUCKETS:
        bucket = snapshot.bucket(key)
        if bucket is None:
            continue
        percent = _round_half_up(bucket.utilization)
        reset = time_until(bucket.resets_at, now) if bucket.resets_at else None
        rows.append(UsageRow(label, percent, bar(percent), reset))
    return rows


def _header(now: Optional[datetime]) -> str:
    local = (now or datetime.now(timezone.utc)).astimezone()
    return f"claude.ai usage - {local.strftime('%H:%M')}"


def _status_line(row: UsageRow) -> str:
    line = f"[{row.bar}] {row.percent}%"
    if row.reset:
        line += f"  resets in {row.reset}"
    return line


def render(snapshot: UsageSnapshot, now: Optional[datetime] = None) -> str:
    """Plain-text progress bars for every present display bucket."""
    lines = ["", _header(now), ""]
    for row in usage_rows(snapshot, now):
        lines.append(f"  {row.label}")
        lines.append(f"  {_status_line(row)}")
        lines.append("")
    return "\n".join(lines)


def render_json(snapshot: UsageSnapshot) -> str:
    return json.dumps(snapshot.raw, indent=2)


def _bar_color(percent: int) -> str:
    if percent >= 80:
        return "red"
    if percent >= 50:
        return "yellow"
    return "green"


def print_usage(console: Console, snapshot: UsageSnapshot, now: Optional[datetime] = None):
    """Coloured variant of render() for terminal output."""
    console.print()
    console.print(Text(_header(now), style="bold"))
    console.print()
    for row in usage_rows(snapshot, now):
        console.print(Text(f"  {row.label}"))
        line = Text("  [")
        line.append(row.bar, style=_bar_color(row.percent))
        line.append(f"] {row.percent}%")
        if row.reset:
            line.append(f"  resets in {row.reset}", style="dim")
        console.print(line)
        console.print()
