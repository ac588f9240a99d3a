"""Table rendering for listings and batch results."""

from collections import Counter
from typing import Iterable, List

from rich.console import Console
from rich.table import Table

from bucket_sync.smart_sync.models import ListEntry, Verification

_VERIFICATION_STYLES = {
    Verification.MATCH: "green",
    Verification.NO_MATCH: "red",
    Verification.MULTIPART_UNVERIFIED: "yellow",
    Verification.NOT_CHECKED: "bright_black",
}


def size_human_readable(size_bytes: int) -> str:
    """Format a byte count as B, KB, MB or GB."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    if size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.2f} MB"
    return f"{size_bytes / 1024 / 1024 / 1024:.3f} GB"


def render_listing(console: Console, entries: List[ListEntry]) -> None:
    """Print listed objects as a table."""
    if not entries:
        console.print("[yellow]No objects found[/yellow]")
        return

    table = Table(border_style="bright_black")
    table.add_column("Name", style="bright_black")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    table.add_column("ETag")
    table.add_column("Local")

    for entry in entries:
        modified = entry.remote.last_modified
        style = _VERIFICATION_STYLES[entry.verification]
        table.add_row(
            entry.key,
            size_human_readable(entry.size),
            modified.strftime("%Y-%m-%d %H:%M:%S") if modified else "-",
            str(entry.remote.fingerprint) or "NoETag",
            f"[{style}]{entry.verification.value}[/{style}]",
        )

    console.print(table)
    console.print(f"\n{len(entries)} object(s)")


def summarize(outcomes: Iterable[str]) -> str:
    """One-line count of outcomes, e.g. '2 transferred, 1 skipped-exists'."""
    counts = Counter(outcomes)
    if not counts:
        return "Nothing to do"
    return ", ".join(f"{count} {name}" for name, count in sorted(counts.items()))
