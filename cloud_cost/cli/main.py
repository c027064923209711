"""
CLI interface for Cloud Cost.

Provides command-line access to all comparison and estimation queries.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from cloud_cost.config.loader import default_settings, load_settings, resolve_config_path
from cloud_cost.config.log import configure_logging
from cloud_cost.sdk.client import CloudCostClient, is_error

app = typer.Typer(help="Compare cloud costs across AWS, Azure, GCP and OCI.")
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        help="Settings YAML file (defaults to $CLOUD_COST_CONFIG)"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """Cloud Cost CLI."""
    ctx.obj = {"config": config, "verbose": verbose}
    if ctx.invoked_subcommand is None:
        console.print("Cloud Cost - Use --help to see available commands")


def _get_client(ctx: typer.Context) -> CloudCostClient:
    """Build a client from the global options."""
    options = ctx.obj or {}
    path = resolve_config_path(options.get("config"))
    try:
        settings = load_settings(path) if path else default_settings()
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading config:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    level = logging.DEBUG if options.get("verbose") else settings.logging.numeric_level
    configure_logging(level)
    return CloudCostClient(settings)


def _read_workload(path: Path) -> Dict[str, Any]:
    """Read a workload spec from a YAML or JSON file."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        console.print(f"[red]Error reading workload file:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    return data or {}


def _finish(payload: Dict[str, Any], as_json: bool, render) -> None:
    """Print a client payload and exit with the matching code."""
    if is_error(payload):
        error = payload["error"]
        if as_json:
            typer.echo(json.dumps(payload, indent=2))
        else:
            console.print(f"[red]Error:[/] {error['message']}")
        sys.exit(EXIT_CODE_FAIL)

    if as_json:
        typer.echo(json.dumps(payload, indent=2))
    else:
        render(payload)
    sys.exit(EXIT_CODE_PASS)


def _format_currency(amount: Optional[float]) -> str:
    """Format currency with proper symbols and formatting."""
    if amount is None:
        return "-"
    return f"${amount:,.2f}"


def _format_gb(amount: float) -> str:
    return f"{amount:,.0f}" if float(amount).is_integer() else f"{amount:,.2f}"


def _json_option() -> Any:
    return typer.Option(False, "--json", help="Print the raw JSON payload")


@app.command()
def compute(
    ctx: typer.Context,
    vcpus: float = typer.Option(..., "--vcpus", help="Requested vCPUs"),
    memory: float = typer.Option(..., "--memory", "-m", help="Requested memory in GB"),
    category: Optional[str] = typer.Option(
        None,
        "--category",
        help="general, compute, memory, storage, gpu or arm"
    ),
    exclude_deprecated: bool = typer.Option(
        False,
        "--exclude-deprecated",
        help="Skip deprecated SKUs"
    ),
    provider: Optional[List[str]] = typer.Option(
        None,
        "--provider",
        "-p",
        help="Restrict to a provider (repeatable)"
    ),
    as_json: bool = _json_option()
):
    """Compare compute instances matching a vCPU/memory shape."""
    payload = _get_client(ctx).compare_compute(
        vcpus=vcpus,
        memory_gb=memory,
        category=category,
        exclude_deprecated=exclude_deprecated,
        providers=provider or None
    )
    _finish(payload, as_json, _display_compute)


def _display_compute(payload: Dict[str, Any]) -> None:
    console.print(f"\n[bold]{payload['summary']}[/bold]")
    if not payload["matches"]:
        return

    table = Table(title="Matching Instances")
    table.add_column("Provider")
    table.add_column("Instance")
    table.add_column("vCPUs", justify="right")
    table.add_column("Memory (GB)", justify="right")
    table.add_column("Monthly", justify="right")
    for instance in payload["matches"]:
        table.add_row(
            instance["provider"].upper(),
            instance["name"],
            str(instance["vcpus"]),
            _format_gb(instance["memory_gb"]),
            _format_currency(instance["monthly_price"])
        )
    console.print(table)
    if payload["total_matches"] > len(payload["matches"]):
        console.print(f"[dim]Showing {len(payload['matches'])} of {payload['total_matches']} matches[/]")


@app.command("cheapest-compute")
def cheapest_compute(
    ctx: typer.Context,
    vcpus: float = typer.Option(..., "--vcpus", help="Requested vCPUs"),
    memory: float = typer.Option(..., "--memory", "-m", help="Requested memory in GB"),
    category: Optional[str] = typer.Option(None, "--category", help="Instance category filter"),
    as_json: bool = _json_option()
):
    """Show the cheapest matching instance on each provider."""
    payload = _get_client(ctx).find_cheapest_compute(vcpus=vcpus, memory_gb=memory, category=category)
    _finish(payload, as_json, _display_cheapest_compute)


def _display_cheapest_compute(payload: Dict[str, Any]) -> None:
    console.print(f"\n[bold]{payload['summary']}[/bold]")
    table = Table(title="Cheapest per Provider")
    table.add_column("Provider")
    table.add_column("Instance")
    table.add_column("Monthly", justify="right")
    for option in payload["options"]:
        instance = option["instance"]
        if instance is None:
            table.add_row(option["provider"].upper(), "[dim]no match[/]", "-")
        else:
            table.add_row(option["provider"].upper(), instance["name"], _format_currency(instance["monthly_price"]))
    console.print(table)


@app.command()
def storage(
    ctx: typer.Context,
    size: float = typer.Option(..., "--size", "-s", help="Storage size in GB"),
    tier: Optional[str] = typer.Option(None, "--tier", help="hot, cool, cold or archive"),
    storage_type: Optional[str] = typer.Option(None, "--type", help="object, block, file or archive"),
    as_json: bool = _json_option()
):
    """Rank storage classes by monthly cost."""
    payload = _get_client(ctx).compare_storage(size_gb=size, tier=tier, storage_type=storage_type)
    _finish(payload, as_json, _display_storage)


def _display_storage(payload: Dict[str, Any]) -> None:
    console.print(f"\n[bold]{payload['summary']}[/bold]")
    if not payload["estimates"]:
        return

    table = Table(title="Storage Options")
    table.add_column("Provider")
    table.add_column("Name")
    table.add_column("Tier")
    table.add_column("$/GB", justify="right")
    table.add_column("Monthly", justify="right")
    for estimate in payload["estimates"]:
        option = estimate["storage"]
        table.add_row(
            estimate["provider"].upper(),
            estimate["name"],
            option["tier"],
            f"${option['price_per_gb_month']:.4f}",
            _format_currency(estimate["monthly_cost"])
        )
    console.print(table)


@app.command("storage-summary")
def storage_summary(
    ctx: typer.Context,
    size: float = typer.Option(..., "--size", "-s", help="Storage size in GB"),
    as_json: bool = _json_option()
):
    """Cheapest storage per tier with a recommendation."""
    payload = _get_client(ctx).storage_summary(size_gb=size)
    _finish(payload, as_json, _display_storage_summary)


def _display_storage_summary(payload: Dict[str, Any]) -> None:
    table = Table(title=f"Storage by Tier ({_format_gb(payload['size_gb'])}GB)")
    table.add_column("Tier")
    table.add_column("Provider")
    table.add_column("Name")
    table.add_column("Monthly", justify="right")
    for tier, estimates in payload["by_tier"].items():
        if not estimates:
            table.add_row(tier, "-", "[dim]none[/]", "-")
            continue
        best = estimates[0]
        table.add_row(tier, best["provider"].upper(), best["name"], _format_currency(best["monthly_cost"]))
    console.print(table)
    console.print(f"\n{payload['recommendation']}")


@app.command()
def egress(
    ctx: typer.Context,
    gb: float = typer.Option(..., "--gb", help="Monthly egress volume in GB"),
    as_json: bool = _json_option()
):
    """Compare monthly internet egress cost."""
    payload = _get_client(ctx).compare_egress(monthly_gb=gb)
    _finish(payload, as_json, _display_egress)


def _display_egress(payload: Dict[str, Any]) -> None:
    console.print(f"\n[bold]{payload['summary']}[/bold]")
    table = Table(title="Egress Cost")
    table.add_column("Provider")
    table.add_column("Free GB", justify="right")
    table.add_column("Billable GB", justify="right")
    table.add_column("Monthly", justify="right")
    for estimate in payload["estimates"]:
        table.add_row(
            estimate["provider"].upper(),
            _format_gb(estimate["free_gb"]),
            _format_gb(estimate["billable_gb"]),
            _format_currency(estimate["monthly_cost"])
        )
    console.print(table)


@app.command()
def kubernetes(
    ctx: typer.Context,
    nodes: int = typer.Option(..., "--nodes", "-n", help="Worker node count"),
    vcpus: float = typer.Option(..., "--vcpus", help="vCPUs per node"),
    memory: float = typer.Option(..., "--memory", "-m", help="Memory per node in GB"),
    as_json: bool = _json_option()
):
    """Compare managed Kubernetes cluster cost."""
    payload = _get_client(ctx).compare_kubernetes(node_count=nodes, node_vcpus=vcpus, node_memory_gb=memory)
    _finish(payload, as_json, _display_kubernetes)


def _display_kubernetes(payload: Dict[str, Any]) -> None:
    console.print(f"\n[bold]{payload['summary']}[/bold]")
    table = Table(title="Kubernetes Cluster Cost")
    table.add_column("Provider")
    table.add_column("Service")
    table.add_column("Control Plane", justify="right")
    table.add_column("Workers", justify="right")
    table.add_column("Total", justify="right")
    for estimate in payload["estimates"]:
        worker = estimate["worker_instance"]
        workers = _format_currency(estimate["worker_node_cost"])
        if worker is not None:
            workers = f"{workers} ({worker['name']})"
        table.add_row(
            estimate["provider"].upper(),
            estimate["product"],
            _format_currency(estimate["control_plane_cost"]),
            workers,
            _format_currency(estimate["total_monthly_cost"])
        )
    console.print(table)


@app.command()
def workload(
    ctx: typer.Context,
    file: Path = typer.Option(..., "--file", "-f", help="Workload spec (YAML or JSON)"),
    as_json: bool = _json_option()
):
    """Estimate a full workload on every provider."""
    spec = _read_workload(file)
    payload = _get_client(ctx).calculate_workload_cost(spec)
    _finish(payload, as_json, _display_workload)


@app.command("quick-estimate")
def quick_estimate(
    ctx: typer.Context,
    preset: str = typer.Argument(..., help="Preset name (see 'presets')"),
    as_json: bool = _json_option()
):
    """Estimate a named preset workload."""
    payload = _get_client(ctx).quick_estimate(preset)
    _finish(payload, as_json, _display_workload)


def _display_workload(payload: Dict[str, Any]) -> None:
    if payload.get("preset"):
        console.print(f"\n[bold]Preset:[/bold] {payload['preset']} - {payload['preset_description']}")

    table = Table(title="Workload Cost by Provider")
    table.add_column("Provider")
    table.add_column("Monthly Total", justify="right")
    table.add_column("Notes")
    for estimate in payload["estimates"]:
        table.add_row(
            estimate["provider"].upper(),
            _format_currency(estimate["total_monthly"]),
            "; ".join(estimate["notes"])
        )
    console.print(table)

    cheapest = next(e for e in payload["estimates"] if e["provider"] == payload["cheapest"])
    breakdown = Table(title=f"{cheapest['provider'].upper()} Breakdown")
    breakdown.add_column("Category")
    breakdown.add_column("Item")
    breakdown.add_column("Qty", justify="right")
    breakdown.add_column("Monthly", justify="right")
    for line in cheapest["breakdown"]:
        breakdown.add_row(
            line["category"],
            line["item"],
            _format_gb(line["quantity"]),
            _format_currency(line["monthly_total"])
        )
    console.print(breakdown)
    console.print(f"\n{payload['savings_summary']}")


@app.command()
def presets(ctx: typer.Context, as_json: bool = _json_option()):
    """List the available workload presets."""
    payload = _get_client(ctx).list_presets()
    _finish(payload, as_json, _display_presets)


def _display_presets(payload: Dict[str, Any]) -> None:
    table = Table(title="Workload Presets")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Shape")
    for preset in payload["presets"]:
        table.add_row(preset["name"], preset["category"], preset["summary"])
    console.print(table)


@app.command()
def migrate(
    ctx: typer.Context,
    file: Path = typer.Option(..., "--file", "-f", help="Workload spec (YAML or JSON)"),
    current: str = typer.Option(..., "--from", help="Provider the workload runs on today"),
    target: Optional[str] = typer.Option(None, "--to", help="Destination provider (defaults to cheapest)"),
    as_json: bool = _json_option()
):
    """Estimate the savings of migrating a workload."""
    spec = _read_workload(file)
    payload = _get_client(ctx).estimate_migration_savings(spec, current, target)
    _finish(payload, as_json, _display_migration)


def _display_migration(payload: Dict[str, Any]) -> None:
    console.print("\n[bold]Migration Estimate[/bold]")
    console.print("-" * 40)
    console.print(f"Current ({payload['current_provider'].upper()}): {_format_currency(payload['current_cost'])}/month")
    console.print(f"Target ({payload['target_provider'].upper()}): {_format_currency(payload['target_cost'])}/month")
    console.print(f"Monthly savings: {_format_currency(payload['monthly_savings'])}")
    console.print(f"Annual savings: {_format_currency(payload['annual_savings'])}")
    console.print(f"\n{payload['recommendation']}")


@app.command()
def freshness(ctx: typer.Context, as_json: bool = _json_option()):
    """Show how old each provider's pricing data is."""
    payload = _get_client(ctx).data_freshness()
    _finish(payload, as_json, _display_freshness)


def _display_freshness(payload: Dict[str, Any]) -> None:
    table = Table(title="Pricing Data Freshness")
    table.add_column("Provider")
    table.add_column("Last Updated")
    table.add_column("Age (days)", justify="right")
    table.add_column("Status")
    for item in payload["providers"]:
        status = "[yellow]stale[/]" if item["is_stale"] else "[green]fresh[/]"
        table.add_row(item["provider"].upper(), item["last_updated"][:10], str(item["age_in_days"]), status)
    console.print(table)


@app.command()
def provider(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="aws, azure, gcp or oci"),
    as_json: bool = _json_option()
):
    """Show one provider's bundled pricing data."""
    payload = _get_client(ctx).provider_details(name)
    _finish(payload, as_json, _display_provider)


def _display_provider(payload: Dict[str, Any]) -> None:
    metadata = payload["metadata"]
    console.print(f"\n[bold]{payload['provider'].upper()} Pricing Data[/bold]")
    console.print("-" * 40)
    console.print(f"Source: {metadata['source']}")
    console.print(f"Last updated: {metadata['last_updated']}")
    console.print(f"Compute instances: {len(payload['compute'])}")
    console.print(f"Storage options: {len(payload['storage'])}")
    console.print(f"Database offerings: {len(payload['database'])}")
    console.print(f"Free egress: {_format_gb(payload['egress']['free_gb_per_month'])}GB/month")
    if payload["kubernetes"] is not None:
        k8s = payload["kubernetes"]
        console.print(f"Kubernetes: {k8s['name']} control plane {_format_currency(k8s['control_plane_monthly'])}/month")


if __name__ == "__main__":
    app()
