#!/usr/bin/env python3
"""
Weight report for the genomes stored in an archive checkpoint.

Usage:
    python tools/genome_report.py outputs/.../checkpoint.json
    python tools/genome_report.py checkpoint.json --all
"""

from __future__ import annotations

from pathlib import Path
import sys

import click

from sweepevo.evolution.checkpoint import load_checkpoint
from sweepevo.exceptions import CheckpointError
from sweepevo.genome.stats import STAGNANT_STD, weight_stats


@click.command()
@click.argument("checkpoint", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--all", "show_all", is_flag=True, help="Report every archive entry, not only the champion.")
@click.option(
    "--stagnant-std",
    type=float,
    default=STAGNANT_STD,
    show_default=True,
    help="Standard deviation below which weights are reported as stagnant.",
)
def main(checkpoint: Path, show_all: bool, stagnant_std: float) -> None:
    """Print weight statistics for the champion of CHECKPOINT."""
    try:
        data = load_checkpoint(checkpoint)
    except CheckpointError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"=== {checkpoint} ===")
    click.echo(f"Generation: {data.generation}  Archive: {len(data.entries)}/{data.capacity}")
    if not data.entries:
        click.echo("Archive is empty.")
        sys.exit(1)

    entries = data.entries if show_all else data.entries[:1]
    stagnant_found = False
    for rank, entry in enumerate(entries, start=1):
        stats = weight_stats(entry.genome, stagnant_std=stagnant_std)
        stagnant_found |= stats.stagnant
        click.echo("")
        click.echo(
            f"#{rank} score={entry.score:.2f} victory={entry.victory} born={entry.born_at_generation}"
        )
        click.echo(f"  Weights: {stats.parameter_count:,}")
        click.echo(f"  Mean:    {stats.mean:.8f}")
        click.echo(f"  Std:     {stats.std:.8f}")
        click.echo(f"  Range:   [{stats.min:.4f}, {stats.max:.4f}]")
        verdict = "STAGNANT (weights are identical)" if stats.stagnant else "ok"
        click.echo(f"  Verdict: {verdict}")

    sys.exit(2 if stagnant_found else 0)


if __name__ == "__main__":
    main()
