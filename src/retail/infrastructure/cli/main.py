import click
import uvicorn

from retail.infrastructure.bootstrap import get_container
from retail.infrastructure.cli.order_commands import order_cancel, order_show
from retail.infrastructure.cli.stock_commands import stock_audit, stock_show


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Retail: order, payment and stock core"""
    if ctx.obj is None:
        ctx.obj = get_container()


@cli.group()
def db() -> None:
    """Manage the database."""


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def stock() -> None:
    """Inspect the stock ledger."""


@db.command("init")
@click.pass_obj
def db_init(container) -> None:
    """Create all tables."""
    container.init_db()
    click.echo("Database initialised.")


@cli.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, type=int, show_default=True)
@click.pass_obj
def serve(container, host: str, port: int) -> None:
    """Run the HTTP API."""
    from retail.infrastructure.api.app import create_app

    uvicorn.run(create_app(container), host=host, port=port, log_level="info")


# Register subcommands
order.add_command(order_cancel)
order.add_command(order_show)
stock.add_command(stock_audit)
stock.add_command(stock_show)
