"""Formatting utilities for terminal display."""
from datetime import datetime, timezone

SEVERITY_COLORS = {
    "critical": "bold red",
    "warning": "yellow",
    "info": "blue",
    "low": "dim",
}

STATUS_COLORS = {
    "healthy": "green",
    "optimal": "green",
    "warning": "yellow",
    "degraded": "red",
    "critical": "bold red",
}


def format_value(value, unit=""):
    """Format a metric value with its unit: 85.5 '%' -> '85.5%', 1200 'ms' -> '1,200 ms'."""
    if value is None:
        return "N/A"
    value = float(value)
    text = f"{value:,.0f}" if value.is_integer() else f"{value:,.2f}"
    if not unit:
        return text
    return f"{text}{unit}" if unit == "%" else f"{text} {unit}"


def format_pct(value, decimals=1, with_color=False):
    """Format percentage with sign. Optionally include rich color markup."""
    if value is None:
        return "N/A"
    value = float(value)
    sign = "+" if value >= 0 else ""
    formatted = f"{sign}{value:.{decimals}f}%"
    if with_color:
        color = "red" if value > 0 else "green"
        return f"[{color}]{formatted}[/{color}]"
    return formatted


def colorize(text, key, palette=None):
    """Wrap text in the rich style for a severity or status name."""
    style = (palette or SEVERITY_COLORS).get(key)
    if not style:
        return text
    return f"[{style}]{text}[/{style}]"


def format_timestamp(ts):
    """Format a datetime to human-readable string."""
    if ts is None:
        return "N/A"
    if isinstance(ts, str):
        return ts
    return ts.strftime("%Y-%m-%d %H:%M UTC")


def time_ago(dt, now=None):
    """Return human-readable time since dt. E.g., '3h ago', '2d ago'."""
    if dt is None:
        return "N/A"
    now = now or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    seconds = int((now - dt).total_seconds())

    if seconds < 60:
        return f"{seconds}s ago"
    elif seconds < 3600:
        return f"{seconds // 60}m ago"
    elif seconds < 86400:
        return f"{seconds // 3600}h ago"
    else:
        return f"{seconds // 86400}d ago"
