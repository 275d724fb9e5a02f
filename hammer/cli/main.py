"""
Hammer CLI - Command Line Interface for the recurring auction engine

Main entry point for all CLI commands.
"""

import json
import click

from hammer.utils.logger import parse_levels, setup_logging


def _parse_log_levels(ctx, param, value):
    try:
        return parse_levels(value or "")
    except ValueError as e:
        raise click.BadParameter(str(e))


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--env-file", default=None, type=click.Path(dir_okay=False), help="dotenv file with HAMMER_* settings")
@click.option("--log-dir", default=None, help="Also write logs to this directory")
@click.option(
    "--log-level",
    "log_levels",
    default="",
    callback=_parse_log_levels,
    help="Per-subsystem levels, e.g. engine=DEBUG,transfer=WARNING",
)
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, env_file, log_dir, log_levels):
    """Hammer - recurring reserve auction engine"""
    import logging

    level = logging.DEBUG if debug else logging.INFO
    setup_logging(
        level=level,
        log_dir=log_dir,
        log_to_file=log_dir is not None,
        subsystem_levels=log_levels,
    )

    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file


def _load(ctx):
    from pydantic import ValidationError
    from hammer.core.config import load_config

    try:
        return load_config(ctx.obj["env_file"])
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration:\n{e}")


# =============================================================================
# Config Command
# =============================================================================


@cli.command("config")
@click.pass_context
def show_config(ctx):
    """Print the effective configuration as JSON"""
    config = _load(ctx)
    data = config.model_dump()
    data["eligibility_mode"] = config.eligibility_mode.name
    click.echo(json.dumps(data, indent=2))


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.option("--cycles", default=3, show_default=True, help="Auctions to run")
@click.option("--price", default=2000, show_default=True, help="USD price of one native unit")
@click.option("--reserve-usd", default=50_000, show_default=True, help="Reserve price in USD")
@click.pass_context
def demo(ctx, cycles, price, reserve_usd):
    """Run a few auction cycles against in-process collaborators"""
    from hammer.core.access import AuthorizationContext
    from hammer.core.auction import build_engine
    from hammer.core.clock import ManualClock
    from hammer.core.oracle import StaticPriceFeed
    from hammer.core.transfer import NativeLedger, TransferRejected, WrappedNative
    from hammer.crypto import derive_address, generate_keypair

    config = _load(ctx)
    config.reserve_price_usd = reserve_usd

    clock = ManualClock(start=1_700_000_000)
    feed = StaticPriceFeed(answer=price * 10**8, decimals=8, clock=clock)

    admin = generate_keypair().address
    treasury = derive_address("hammer.treasury")
    alice = generate_keypair().address
    bob = generate_keypair().address
    mallory = generate_keypair().address

    ledger = NativeLedger()
    wrapped = WrappedNative(ledger)
    engine = build_engine(admin, treasury, feed, config=config, clock=clock, ledger=ledger, wrapped=wrapped)

    def reject(sender, amount, meter):
        raise TransferRejected("mallory refuses payments")

    for account in (alice, bob, mallory):
        ledger.mint(account, 10_000)
    ledger.set_receive_hook(mallory, reject)

    click.echo("=" * 60)
    click.echo("  HAMMER - DEMO")
    click.echo("=" * 60)
    click.echo()

    admin_ctx = AuthorizationContext(admin)
    created = engine.unpause(admin_ctx)
    if created is None:
        click.echo("✗ Could not open an auction (engine paused)")
        return

    for cycle in range(cycles):
        auction = engine.auction
        click.echo(f"🔨 Unit {auction.unit_id}: reserve {auction.reserve_price}, ends {auction.end_time}")

        if cycle % 2 == 0:
            first = auction.reserve_price
            engine.create_bid(AuthorizationContext(mallory), auction.unit_id, first)
            click.echo(f"  ✓ mallory bids {first}")
            second = engine.minimum_next_bid()
            engine.create_bid(AuthorizationContext(alice), auction.unit_id, second)
            click.echo(f"  ✓ alice bids {second} (mallory refunded, wrapped: {wrapped.balance_of(mallory)})")
            clock.set(engine.auction.end_time - 10)
            late = engine.minimum_next_bid()
            engine.create_bid(AuthorizationContext(bob), auction.unit_id, late)
            click.echo(f"  ✓ bob bids {late} late, auction ends {engine.auction.end_time}")
        else:
            click.echo("  - no bids this cycle")

        clock.set(engine.auction.end_time)
        new = engine.settle_current_and_create_new_auction(AuthorizationContext(alice))
        last = engine.get_settlements(1)[0]
        winner = last.winner or "treasury (unsold)"
        click.echo(f"  ✓ settled: unit {last.unit_id} -> {winner} for {last.amount}")
        click.echo()
        if new is None:
            click.echo("✗ Engine paused: no further auctions")
            break

    click.echo("📊 Final Statistics:")
    click.echo(f"  Treasury balance: {ledger.balance_of(treasury)}")
    click.echo(f"  Treasury units: {engine.issuer.holdings_of(treasury)}")
    click.echo(f"  Recent prices: {engine.get_prices(cycles)}")
    click.echo()
    click.echo("✅ Demo complete!")


if __name__ == "__main__":
    cli()
