"""CLI commands for orders."""

from __future__ import annotations

import click

from retail.application.dto import SYSTEM_ACTOR, OrderDetailDTO
from retail.domain.exceptions import DomainException
from retail.infrastructure.bootstrap import Container


@click.command("show")
@click.option("--id", "order_id", required=True, help="Order id.")
@click.pass_obj
def order_show(container: Container, order_id: str) -> None:
    """Display an order with its items, payments and status history."""
    try:
        dto = container.show_order().handle(order_id, SYSTEM_ACTOR)
    except DomainException as exc:
        raise click.ClickException(str(exc))
    _display_order(dto)


@click.command("cancel")
@click.option("--id", "order_id", required=True, help="Order id.")
@click.option("--actor", "actor_id", required=True, help="Staff user id.")
@click.option("--role", required=True, help="Role to act under, e.g. STORE_MANAGER.")
@click.option("--reason", default="Cancelled by staff", show_default=True)
@click.pass_obj
def order_cancel(
    container: Container, order_id: str, actor_id: str, role: str, reason: str
) -> None:
    """Cancel an unpaid order and put its phones back on sale."""
    try:
        actor = container.authenticate().handle(actor_id, role)
        result = container.cancel_order().handle(order_id, actor, reason=reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if result.already_cancelled:
        click.echo(f"Order {result.order.order_number} was already cancelled.")
    else:
        click.echo(f"Order {result.order.order_number} cancelled.")


def _display_order(dto: OrderDetailDTO) -> None:
    s = dto.summary
    click.echo(f"Order {s.order_number}  (status={s.status}, payment={s.payment_status})")
    click.echo(f"Customer: {dto.user_id}")
    click.echo(f"Ordered:  {dto.ordered_at:%Y-%m-%d %H:%M UTC}")
    if dto.paid_at:
        click.echo(f"Paid:     {dto.paid_at:%Y-%m-%d %H:%M UTC}")
    if dto.cancelled_at:
        click.echo(f"Cancelled: {dto.cancelled_at:%Y-%m-%d %H:%M UTC}")
    click.echo()
    click.echo(f"  {'Product':<28} {'Colour':<12} {'Price':>10}")
    click.echo(f"  {'-'*52}")
    for item in dto.items:
        name = f"{item.product_name} {item.storage}"
        click.echo(f"  {name:<28} {item.color:<12} {item.total_price:>10}")
    click.echo(f"  {'-'*52}")
    click.echo(f"  {'Subtotal':<41} {dto.subtotal:>10}")
    click.echo(f"  {'Shipping':<41} {dto.shipping_cost:>10}")
    click.echo(f"  {'Tax':<41} {dto.tax_amount:>10}")
    click.echo(f"  {'Total (' + s.currency + ')':<41} {s.total_amount:>10}")

    if dto.payments:
        click.echo()
        click.echo("Payments:")
        for p in dto.payments:
            click.echo(f"  {p.status:<10} {p.amount:>10} {p.currency}  {p.provider_reference}")

    if dto.history:
        click.echo()
        click.echo("History:")
        for h in dto.history:
            click.echo(
                f"  {h.created_at:%Y-%m-%d %H:%M}  {h.from_status or '-':>9} -> "
                f"{h.to_status:<9}  {h.note}"
            )
