"""CLI commands for the stock ledger."""

from __future__ import annotations

import click

from retail.infrastructure.bootstrap import Container


@click.command("show")
@click.pass_obj
def stock_show(container: Container) -> None:
    """Show available / reserved / sold counters per variant."""
    lines = container.show_stock().handle()

    if not lines:
        click.echo("No variants found.")
        return

    click.echo(f"{'Variant':<36} {'Available':>10} {'Reserved':>10} {'Sold':>8}")
    click.echo("-" * 67)
    for line in lines:
        name = f"{line.brand} {line.model_name} {line.storage}"
        click.echo(f"{name:<36} {line.available:>10} {line.reserved:>10} {line.sold:>8}")


@click.command("audit")
@click.pass_obj
def stock_audit(container: Container) -> None:
    """Check every variant's counters against its article statuses.

    Exits with status 1 when any variant has drifted.
    """
    audits = container.audit_stock().handle()
    drifted = [a for a in audits if not a.is_consistent]

    for audit in drifted:
        details = ", ".join(
            f"{status.value} {delta:+d}" for status, delta in audit.drift.items()
        )
        click.echo(f"DRIFT {audit.model_name} ({audit.variant_id}): {details}")

    if drifted:
        raise click.ClickException(f"{len(drifted)} of {len(audits)} variant(s) drifted")
    click.echo(f"All {len(audits)} variant(s) consistent.")
