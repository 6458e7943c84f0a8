#!/usr/bin/env python3
"""metricwatch - CLI Entry Point."""
import sys
import csv
import json
import functools
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

import click
from rich.console import Console
from rich.table import Table

from __version__ import __version__
from models.enums import AlertStatus
from utils.errors import MetricwatchError
from utils.formatters import (
    STATUS_COLORS, colorize, format_pct, format_timestamp, format_value, time_ago,
)

console = Console()


def _init_components(config_path=None, verbose=False):
    """Lazy initialization of all components."""
    from utils.logger import setup_logging
    from config import load_config
    from models.database import Database
    from monitor.service import build_service

    config = load_config(config_path)
    setup_logging("DEBUG" if verbose else config["logging"]["level"], config["logging"].get("file"))

    db_path = config["database"]["path"]
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    db = Database(db_path)
    db.connect()

    return {"config": config, "db": db, "service": build_service(config, db)}


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--org", "org", envvar="METRICWATCH_ORG", default=None,
              help="Organization id (or METRICWATCH_ORG)")
@click.version_option(__version__, prog_name="metricwatch")
@click.pass_context
def cli(ctx, config_path, verbose, org):
    """metricwatch - Metric ingestion, threshold alerting, baselines & capacity planning."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    ctx.obj["org"] = org


def _get_components(ctx):
    if "_components" not in ctx.obj:
        ctx.obj["_components"] = _init_components(ctx.obj.get("config_path"), ctx.obj.get("verbose"))
    return ctx.obj["_components"]


def _org(ctx):
    org = ctx.obj.get("org")
    if not org:
        raise click.UsageError("--org (or METRICWATCH_ORG) is required")
    return org


def handle_errors(func):
    """Print domain errors in red and exit 1 instead of dumping a traceback."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except MetricwatchError as e:
            console.print(f"[red]Error: {e}[/red]")
            sys.exit(1)
    return wrapper


def _parse_tags(pairs):
    tags = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--tag")
        tags[key] = value
    return tags


# ──────────────────────────────────────────────────────
# METRICS
# ──────────────────────────────────────────────────────
@cli.command()
@click.argument("metric_name")
@click.argument("value", type=float)
@click.option("--source", "-s", required=True, help="Emitting host / service")
@click.option("--type", "metric_type", default="business_kpi", help="Metric type (system_cpu, application_response_time, ...)")
@click.option("--unit", default="", help="Unit label")
@click.option("--tag", "tags", multiple=True, help="key=value tag (repeatable)")
@click.option("--timestamp", default=None, help="ISO-8601 timestamp (default: now)")
@click.pass_context
@handle_errors
def record(ctx, metric_name, value, source, metric_type, unit, tags, timestamp):
    """Record one metric sample and evaluate alert rules."""
    c = _get_components(ctx)
    payload = {
        "metric_name": metric_name,
        "metric_type": metric_type,
        "source": source,
        "value": value,
        "unit": unit,
        "tags": _parse_tags(tags),
        "timestamp": timestamp,
    }
    metric_id = c["service"].record_metric(_org(ctx), payload)
    console.print(f"[green]✓[/green] Recorded {metric_name}@{source} = {format_value(value, unit)} ({metric_id})")


def _read_metrics_file(path):
    path = Path(path)
    if path.suffix.lower() == ".csv":
        with open(path, newline="") as f:
            rows = list(csv.DictReader(f))
        for row in rows:
            row["value"] = float(row["value"]) if row.get("value") not in (None, "") else None
            row["tags"] = json.loads(row["tags"]) if row.get("tags") else {}
            row["timestamp"] = row.get("timestamp") or None
        return rows
    with open(path) as f:
        data = json.load(f)
    return data.get("metrics", []) if isinstance(data, dict) else data


@cli.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
@handle_errors
def import_metrics(ctx, path):
    """Import a JSON or CSV file of samples as one atomic batch."""
    c = _get_components(ctx)
    try:
        metrics = _read_metrics_file(path)
    except (ValueError, KeyError) as e:
        console.print(f"[red]Error: could not parse {path}: {e}[/red]")
        sys.exit(1)
    ids = c["service"].record_metrics_batch(_org(ctx), metrics)
    console.print(f"[green]✓[/green] Imported {len(ids)} metric(s) from {path}")


# ──────────────────────────────────────────────────────
# RULES
# ──────────────────────────────────────────────────────
@cli.group()
def rules():
    """Manage alert rules."""
    pass


@rules.command("create")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--user", default="", help="Recorded as the rule's creator")
@click.pass_context
@handle_errors
def rules_create(ctx, path, user):
    """Create one rule from a YAML or JSON file."""
    import yaml
    c = _get_components(ctx)
    with open(path) as f:
        raw = yaml.safe_load(f)
    rule_id = c["service"].create_alert_rule(_org(ctx), raw, created_by=user)
    console.print(f"[green]✓[/green] Created rule {rule_id}")


@rules.command("load")
@click.argument("path", required=False)
@click.option("--user", default="", help="Recorded as the rules' creator")
@click.pass_context
@handle_errors
def rules_load(ctx, path, user):
    """Load every rule in a seed file (default: alerts.rules_file from config)."""
    c = _get_components(ctx)
    if not path:
        default = Path(c["config"]["alerts"]["rules_file"])
        if not default.is_absolute() and not default.exists():
            default = Path(__file__).parent / default
        path = str(default)
    created = c["service"].load_alert_rules(_org(ctx), path, created_by=user)
    console.print(f"[green]✓[/green] Loaded {len(created)} rule(s) from {path}")


@rules.command("list")
@click.option("--active", "active_only", is_flag=True, help="Only active rules")
@click.pass_context
@handle_errors
def rules_list(ctx, active_only):
    """List alert rules."""
    c = _get_components(ctx)
    rule_list = c["service"].list_alert_rules(_org(ctx), active_only=active_only)
    if not rule_list:
        console.print("[dim]No alert rules[/dim]")
        return
    table = Table(title="Alert Rules", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Metric")
    table.add_column("Conditions")
    table.add_column("Cooldown")
    table.add_column("Evaluated")
    table.add_column("Alerts")
    table.add_column("Active")
    for r in rule_list:
        conds = ", ".join(f"{cond.operator} {cond.value:g} → {colorize(cond.severity, cond.severity)}" for cond in r.conditions)
        table.add_row(r.id[:8], r.rule_name, r.metric_query.metric_name, conds, f"{r.alert_cooldown}s",
                      str(r.evaluation_count), str(r.alert_count),
                      "[green]✓[/green]" if r.is_active else "[red]✗[/red]")
    console.print(table)


@rules.command("enable")
@click.argument("rule_id")
@click.pass_context
@handle_errors
def rules_enable(ctx, rule_id):
    """Activate a rule."""
    c = _get_components(ctx)
    c["service"].set_rule_active(_org(ctx), rule_id, True)
    console.print(f"[green]✓[/green] Rule {rule_id} enabled")


@rules.command("disable")
@click.argument("rule_id")
@click.pass_context
@handle_errors
def rules_disable(ctx, rule_id):
    """Deactivate a rule."""
    c = _get_components(ctx)
    c["service"].set_rule_active(_org(ctx), rule_id, False)
    console.print(f"[green]✓[/green] Rule {rule_id} disabled")


@rules.command("test")
@click.argument("metric_name")
@click.argument("value", type=float)
@click.option("--source", "-s", default="cli-test", help="Source to test with")
@click.option("--type", "metric_type", default="business_kpi", help="Metric type")
@click.pass_context
@handle_errors
def rules_test(ctx, metric_name, value, source, metric_type):
    """Dry-run a value against all rules (ignores cooldowns, writes nothing)."""
    c = _get_components(ctx)
    results = c["service"].test_metric(_org(ctx), {
        "metric_name": metric_name, "metric_type": metric_type, "source": source, "value": value,
    })
    table = Table(title="Alert Rules Test", show_header=True)
    table.add_column("Rule")
    table.add_column("Metric")
    table.add_column("Would Fire")
    table.add_column("Severity")
    table.add_column("Enabled")
    for r in results:
        fire_str = "[green]YES[/green]" if r["would_fire"] else "[dim]no[/dim]"
        table.add_row(r["rule_name"], r["metric_name"], fire_str, r["severity"] or "-",
                      "✓" if r["is_active"] else "✗")
    console.print(table)


# ──────────────────────────────────────────────────────
# ALERTS
# ──────────────────────────────────────────────────────
@cli.group()
def alerts():
    """Inspect and manage alerts."""
    pass


@alerts.command("list")
@click.option("--status", type=click.Choice([s.value for s in AlertStatus]), default=None)
@click.option("--severity", type=click.Choice(["critical", "warning", "info", "low"]), default=None)
@click.option("--limit", default=50, type=int, help="Max rows")
@click.pass_context
@handle_errors
def alerts_list(ctx, status, severity, limit):
    """Show alerts, newest first."""
    c = _get_components(ctx)
    alert_list = c["service"].list_alerts(_org(ctx), status=status, severity=severity, limit=limit)
    if not alert_list:
        console.print("[green]All clear - no alerts[/green]")
        return
    table = Table(title="Alerts", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Severity")
    table.add_column("Title")
    table.add_column("Value")
    table.add_column("Status")
    table.add_column("Last Seen")
    table.add_column("Ack")
    for a in alert_list:
        table.add_row(a.id[:8], colorize(a.severity.upper(), a.severity), a.title,
                      format_value(a.trigger_value), a.status, time_ago(a.last_seen),
                      a.acknowledged_by or "")
    console.print(table)


@alerts.command("ack")
@click.argument("alert_id")
@click.option("--user", required=True, help="Who is acknowledging")
@click.pass_context
@handle_errors
def alerts_ack(ctx, alert_id, user):
    """Acknowledge an alert."""
    c = _get_components(ctx)
    c["service"].acknowledge_alert(_org(ctx), alert_id, user)
    console.print(f"[green]✓[/green] Alert {alert_id} acknowledged by {user}")


@alerts.command("resolve")
@click.argument("alert_id")
@click.option("--user", default=None, help="Who is resolving")
@click.option("--note", default=None, help="Resolution note")
@click.pass_context
@handle_errors
def alerts_resolve(ctx, alert_id, user, note):
    """Resolve an active alert."""
    c = _get_components(ctx)
    if c["service"].resolve_alert(_org(ctx), alert_id, user, note):
        console.print(f"[green]✓[/green] Alert {alert_id} resolved")
    else:
        console.print(f"[yellow]Alert {alert_id} was already resolved[/yellow]")


# ──────────────────────────────────────────────────────
# ANALYSIS
# ──────────────────────────────────────────────────────
@cli.command()
@click.argument("metric_name")
@click.option("--source", "-s", required=True, help="Emitting host / service")
@click.option("--time-frame", default="daily", help="daily, weekly, ... (sets the lookback window)")
@click.pass_context
@handle_errors
def baseline(ctx, metric_name, source, time_frame):
    """Calculate and store a performance baseline."""
    c = _get_components(ctx)
    org = _org(ctx)
    c["service"].calculate_performance_baseline(org, metric_name, source, time_frame)
    b = c["service"].get_latest_baseline(org, metric_name, source, time_frame)

    table = Table(title=f"Baseline: {metric_name}@{source} ({time_frame})", show_header=False)
    table.add_column("Stat", style="dim")
    table.add_column("Value")
    rows = [
        ("Samples", str(b.sample_size)),
        ("Confidence", f"{b.confidence_level}%"),
        ("Mean", format_value(b.mean_value)),
        ("Median", format_value(b.median_value)),
        ("Std Dev", format_value(b.standard_deviation)),
        ("P95 / P99", f"{format_value(b.percentile_95)} / {format_value(b.percentile_99)}"),
        ("Min / Max", f"{format_value(b.min_value)} / {format_value(b.max_value)}"),
        ("Normal Range", f"{format_value(b.lower_bound)} - {format_value(b.upper_bound)}"),
    ]
    for name, val in rows:
        table.add_row(name, val)
    console.print(table)


@cli.command()
@click.argument("resource_type")
@click.argument("resource_id")
@click.pass_context
@handle_errors
def capacity(ctx, resource_type, resource_id):
    """Run a capacity analysis for one resource."""
    c = _get_components(ctx)
    org = _org(ctx)
    analysis_id = c["service"].perform_capacity_analysis(org, resource_type, resource_id)
    a = c["service"].get_capacity_analysis(org, analysis_id)

    console.print(f"\n[bold]Capacity: {resource_type}/{resource_id}[/bold]")
    console.print(f"  Utilization: {format_value(a.current_utilization)} / {format_value(a.current_capacity)} "
                  f"({a.utilization_percentage}%)")
    console.print(f"  Growth: {format_pct(a.projected_growth_rate, with_color=True)} per month")
    console.print(f"  Exhaustion: {format_timestamp(a.estimated_exhaustion_date) if a.estimated_exhaustion_date else 'not projected'}")

    table = Table(title="Forecast", show_header=True)
    table.add_column("Date", style="dim")
    table.add_column("Utilization")
    table.add_column("Confidence")
    for p in a.projected_utilization:
        table.add_row(p.date, format_value(p.utilization), f"{p.confidence}%")
    console.print(table)
    for rec in a.recommendations:
        console.print(f"  [yellow]→ [{rec['priority']}] {rec['description']}[/yellow]")


# ──────────────────────────────────────────────────────
# SECURITY
# ──────────────────────────────────────────────────────
@cli.group()
def security():
    """Security event recording."""
    pass


@security.command("record")
@click.argument("event_type")
@click.option("--severity", required=True, type=click.Choice(["critical", "warning", "info", "low"]))
@click.option("--category", required=True)
@click.option("--title", required=True)
@click.option("--source", "-s", required=True)
@click.option("--source-ip", default=None)
@click.option("--user-id", default=None)
@click.option("--description", default=None)
@click.option("--data", "event_data", default="{}", help="JSON object of event details")
@click.pass_context
@handle_errors
def security_record(ctx, event_type, severity, category, title, source, source_ip, user_id, description, event_data):
    """Record a security event."""
    c = _get_components(ctx)
    try:
        data = json.loads(event_data)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--data")
    event_id = c["service"].record_security_event(_org(ctx), {
        "event_type": event_type,
        "severity": severity,
        "category": category,
        "title": title,
        "source": source,
        "source_ip": source_ip,
        "user_id": user_id,
        "description": description,
        "event_data": data,
    })
    console.print(f"[green]✓[/green] Recorded security event {event_id}")


# ──────────────────────────────────────────────────────
# HEALTH
# ──────────────────────────────────────────────────────
@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
@handle_errors
def health(ctx, as_json):
    """Show the system health summary."""
    c = _get_components(ctx)
    summary = c["service"].get_system_health_summary(_org(ctx))
    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    console.print(f"\n[bold]Overall:[/bold] {colorize(summary['overall_status'].upper(), summary['overall_status'], STATUS_COLORS)}")
    console.print(f"  Critical alerts: {summary['critical_alerts']}")
    console.print(f"  Warning alerts:  {summary['warning_alerts']}")
    console.print(f"  Security events (24h): {summary['security_events']}")
    console.print(f"  Performance: {colorize(summary['performance_status'], summary['performance_status'], STATUS_COLORS)}")
    table = Table(show_header=False, box=None)
    table.add_column("", style="dim")
    table.add_column("")
    for k, v in summary["system_metrics"].items():
        table.add_row(k.replace("_", " ").title(), format_value(v))
    console.print(table)


# ──────────────────────────────────────────────────────
# WEB / SCHEDULER
# ──────────────────────────────────────────────────────
@cli.command()
@click.option("--port", default=None, type=int, help="Port (default: web.port)")
@click.option("--host", default=None, help="Host (default: web.host)")
@click.pass_context
def web(ctx, port, host):
    """Serve the JSON API."""
    from web.app import create_app

    c = _get_components(ctx)
    host = host or c["config"]["web"]["host"]
    port = port or c["config"]["web"]["port"]
    app = create_app(c["config"], c["service"])

    console.print(f"\n[bold]metricwatch API[/bold] on http://{host}:{port}/api/health")
    console.print(f"\n  Press Ctrl+C to stop.\n")
    app.run(host=host, port=port, debug=False)


@cli.command("schedule")
@click.option("--once", is_flag=True, help="Run each configured job once and exit")
@click.pass_context
@handle_errors
def schedule_cmd(ctx, once):
    """Periodically recompute configured baselines and capacity analyses."""
    import time
    from monitor.scheduler import AnalysisScheduler

    c = _get_components(ctx)
    scheduler = AnalysisScheduler(c["service"], _org(ctx), c["config"])
    if once:
        ok, failed = scheduler.run_once()
        console.print(f"[green]{ok} job(s) succeeded[/green], [red]{failed} failed[/red]")
        return

    scheduler.start()
    console.print(f"Scheduler running every {scheduler.interval}s. Press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        scheduler.stop()


if __name__ == "__main__":
    cli()
