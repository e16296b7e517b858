import io
import json
from datetime import datetime, timedelta, timezone

from claude_usage.display import bar, print_usage, render, render_json, time_until, usage_rows
from claude_usage.models import UsageSnapshot
from rich.console import Console

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _iso(delta: timedelta) -> str:
    return (NOW + delta).isoformat().replace("+00:00", "Z")


class TestTimeUntil:
    def test_minutes(self):
        assert time_until(NOW + timedelta(minutes=30), NOW) == "30m"

    def test_hours_and_minutes(self):
        assert time_until(NOW + timedelta(minutes=90), NOW) == "1h 30m"

    def test_days_and_hours(self):
        assert time_until(NOW + timedelta(hours=50), NOW) == "2d 2h"

    def test_now_and_past(self):
        assert time_until(NOW, NOW) == "now"
        assert time_until(NOW - timedelta(minutes=5), NOW) == "now"

    def test_exactly_one_day(self):
        assert time_until(NOW + timedelta(hours=24), NOW) == "1d 0h"

    def test_naive_datetime_treated_as_utc(self):
        assert time_until(datetime(2026, 10, 19, 12, 45), NOW) == "45m"


class TestBar:
    def test_widths(self):
        assert bar(0) == "░" * 28
        assert bar(100) == "█" * 28
        assert bar(50) == "█" * 14 + "░" * 14

    def test_rounds_to_nearest_cell(self):
        # 42% of 28 cells = 11.76
        assert bar(42).count("█") == 12

    def test_clamped(self):
        assert bar(130) == "█" * 28


class TestRender:
    def test_only_present_buckets(self):
        snapshot = UsageSnapshot(
            raw={
                "five_hour": {"utilization": 42, "resets_at": _iso(timedelta(hours=2))},
                "seven_day": None,
                "seven_day_opus": {"utilization": 7.6, "resets_at": _iso(timedelta(days=3))},
            }
        )
        output = render(snapshot, NOW)

        assert "Current session (5h)" in output
        assert "Opus only (7d)" in output
        assert "All models (7d)" not in output
        assert "Sonnet only (7d)" not in output
        assert "] 42%  resets in 2h 0m" in output
        assert "] 8%  resets in 3d 0h" in output

    def test_rows_follow_display_order(self):
        snapshot = UsageSnapshot(
            raw={
                "seven_day_sonnet": {"utilization": 1, "resets_at": _iso(timedelta(hours=1))},
                "five_hour": {"utilization": 2, "resets_at": _iso(timedelta(hours=1))},
            }
        )
        labels = [row.label for row in usage_rows(snapshot, NOW)]
        assert labels == ["Current session (5h)", "Sonnet only (7d)"]

    def test_empty_snapshot_has_no_rows(self):
        assert usage_rows(UsageSnapshot(raw={}), NOW) == []
        assert "%" not in render(UsageSnapshot(raw={}), NOW)

    def test_unused_cowork_bucket_is_not_displayed(self):
        snapshot = UsageSnapshot(raw={"seven_day_cowork": {"utilization": 90, "resets_at": _iso(timedelta(hours=1))}})
        assert usage_rows(snapshot, NOW) == []

    def test_print_usage_matches_plain_rows(self):
        snapshot = UsageSnapshot(raw={"five_hour": {"utilization": 85, "resets_at": _iso(timedelta(minutes=10))}})
        out = io.StringIO()
        print_usage(Console(file=out, width=120, color_system=None), snapshot, NOW)
        text = out.getvalue()
        assert "Current session (5h)" in text
        assert "] 85%  resets in 10m" in text


class TestRenderJson:
    def test_passthrough_keeps_unknown_fields(self):
        raw = {
            "five_hour": {"utilization": 42, "resets_at": "2026-10-19T14:00:00Z"},
            "seven_day_oauth_apps": None,
            "extra_usage": {"is_enabled": False},
        }
        assert json.loads(render_json(UsageSnapshot(raw=raw))) == raw
