#!/usr/bin/env python3
"""
View stored claims from the database.

Usage:
    autoclaims-view                     # List all claims
    autoclaims-view 12                  # View specific claim details
    autoclaims-view --status submitted  # Filter by status
    autoclaims-view --stats             # Show statistics
    autoclaims-view 12 --export         # Dump claim, photos and breakdown as JSON
"""

import argparse
import json
import sys
from datetime import datetime
from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .claims.schema import Claim, ClaimStatus, CostBreakdown, DamagePhoto
from .storage import ClaimStorage, get_claim_store

console = Console()

_STATUS_COLORS = {
    ClaimStatus.APPROVED: "green",
    ClaimStatus.REJECTED: "red",
    ClaimStatus.UNDER_REVIEW: "yellow",
    ClaimStatus.PENDING_INFO: "yellow",
}

_SEVERITY_COLORS = {"minor": "green", "moderate": "yellow", "severe": "red"}


def format_datetime(dt: Optional[datetime]) -> str:
    """Format a datetime for display."""
    if dt is None:
        return ""
    return dt.strftime("%Y-%m-%d %H:%M")


def format_money(value: Optional[float]) -> str:
    return f"${value:,.2f}" if value is not None else "-"


def truncate(text: Optional[str], max_len: int = 50) -> str:
    """Truncate text with ellipsis."""
    if not text:
        return ""
    if len(text) > max_len:
        return text[:max_len-3] + "..."
    return text


def styled_status(status: ClaimStatus) -> str:
    color = _STATUS_COLORS.get(status)
    return f"[{color}]{status.value}[/{color}]" if color else status.value


def make_summary_table(claims: list[Claim]) -> Table:
    """Create summary table with key claim info."""
    table = Table(
        title="📋 Claims",
        box=box.ROUNDED,
        header_style="bold cyan",
    )

    table.add_column("ID", justify="right")
    table.add_column("Claim #", style="bold")
    table.add_column("Submitted", style="dim")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Policyholder")
    table.add_column("Vehicle")
    table.add_column("Incident")
    table.add_column("Estimate", justify="right")

    for claim in claims:
        table.add_row(
            str(claim.id),
            claim.claim_number,
            format_datetime(claim.submission_date),
            styled_status(claim.status),
            claim.priority.value,
            truncate(claim.policyholder_name, 20),
            truncate(claim.vehicle_info, 25),
            truncate(claim.incident_type, 15),
            format_money(claim.total_estimate),
        )

    return table


def show_claim_detail(
    claim: Claim,
    photos: list[DamagePhoto],
    breakdown: Optional[CostBreakdown],
) -> None:
    """Show detailed view of a single claim."""
    console.print()
    console.print(Panel(f"[bold cyan]Claim: {claim.claim_number}[/bold cyan]", expand=False))

    console.print("\n[bold]📌 Status[/bold]")
    console.print(f"  Status: [bold]{styled_status(claim.status)}[/bold]")
    console.print(f"  Priority: {claim.priority.value}")
    console.print(f"  Submitted: {format_datetime(claim.submission_date)}")

    console.print("\n[bold]🚗 Incident[/bold]")
    console.print(f"  Policyholder: {claim.policyholder_name}")
    console.print(f"  Vehicle: {claim.vehicle_info}")
    console.print(f"  Date: {claim.incident_date}")
    console.print(f"  Location: {claim.incident_location}")
    console.print(f"  Type: {claim.incident_type}")
    console.print("  Description:")
    for line in claim.damage_description.split("\n"):
        console.print(f"    {line}")

    console.print("\n[bold]📷 Damage Photos[/bold]")
    if photos:
        for photo in photos:
            severity = photo.severity.value if photo.severity else "unknown"
            color = _SEVERITY_COLORS.get(severity, "white")
            confidence = f"{photo.ai_analysis.confidence}%" if photo.ai_analysis else "-"
            console.print(
                f"  #{photo.id} {photo.original_name} -> {photo.filename} "
                f"[{color}]{severity}[/{color}] ({confidence})"
            )
    else:
        console.print("  [dim]No photos uploaded[/dim]")

    console.print("\n[bold]💰 Cost Breakdown[/bold]")
    if breakdown:
        console.print(f"  Bodywork: {format_money(breakdown.bodywork_cost)}")
        console.print(f"  Paint: {format_money(breakdown.paint_cost)}")
        console.print(f"  Parts: {format_money(breakdown.parts_cost)}")
        console.print(f"  Labor: {format_money(breakdown.labor_cost)}")
        console.print(f"  Total: [bold]{format_money(breakdown.total_cost)}[/bold]")
        if breakdown.confidence_level is not None:
            console.print(f"  Confidence: {breakdown.confidence_level}%")
    else:
        console.print("  [dim]No estimate yet[/dim]")

    if claim.adjuster_notes:
        console.print(f"\n[bold]📝 Adjuster Notes[/bold]: {claim.adjuster_notes}")


def show_stats(store: ClaimStorage) -> None:
    """Print claim counts by status."""
    table = Table(title="Claim Statistics", box=box.SIMPLE, header_style="bold cyan")
    table.add_column("Status")
    table.add_column("Claims", justify="right")

    for status in ClaimStatus:
        count = store.count_claims(status=status)
        if count > 0:
            table.add_row(styled_status(status), str(count))
    table.add_row("[bold]total[/bold]", f"[bold]{store.count_claims()}[/bold]")

    console.print(table)


def export_claim(
    claim: Claim,
    photos: list[DamagePhoto],
    breakdown: Optional[CostBreakdown],
) -> str:
    """Serialize a claim with its photos and cost breakdown to JSON."""
    data = {
        "claim": claim.model_dump(mode="json"),
        "photos": [photo.model_dump(mode="json") for photo in photos],
        "cost_breakdown": breakdown.model_dump(mode="json") if breakdown else None,
    }
    return json.dumps(data, indent=2)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="View stored claims")
    parser.add_argument("claim_id", nargs="?", type=int, help="Specific claim id to view")
    parser.add_argument(
        "--status",
        choices=[s.value for s in ClaimStatus],
        help="Filter by status",
    )
    parser.add_argument("--stats", action="store_true", help="Show statistics")
    parser.add_argument("--export", action="store_true", help="Export claim as JSON")
    parser.add_argument("--limit", type=int, default=50, help="Max claims to list")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None, store: Optional[ClaimStorage] = None) -> int:
    args = parse_args(argv)
    store = store or get_claim_store()

    if args.stats:
        show_stats(store)
        return 0

    if args.claim_id is not None:
        claim = store.get_claim(args.claim_id)
        if claim is None:
            console.print(f"\n[red]Claim not found: {args.claim_id}[/red]")
            return 1

        photos = store.get_damage_photos(claim.id)
        breakdown = store.get_cost_breakdown(claim.id)
        if args.export:
            print(export_claim(claim, photos, breakdown))
        else:
            show_claim_detail(claim, photos, breakdown)
        return 0

    claims = store.list_claims(status=args.status, limit=args.limit)
    if not claims:
        console.print("\n[yellow]No claims found.[/yellow]")
        return 0

    console.print(make_summary_table(claims))
    console.print(f"Total: {len(claims)} claim(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
