"""
Sealbid CLI - Command Line Interface for confidential auctions

Main entry point for all CLI commands.
"""

import json
import logging

import click

from sealbid import __version__
from sealbid.utils.logger import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="JSON configuration file")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, debug, config_path):
    """Sealbid - Confidential sealed-bid auctions"""
    from sealbid.core.config import load_config

    config = load_config(config_path)
    level = logging.DEBUG if debug else config.log_level_value
    setup_logging(level=level, log_dir=config.log_dir, log_to_file=config.log_dir is not None)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# =============================================================================
# Config Commands
# =============================================================================

@cli.group()
def config():
    """Configuration commands"""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Print the effective configuration"""
    click.echo(json.dumps(ctx.obj["config"].model_dump(mode="json"), indent=2))


# =============================================================================
# Key Commands
# =============================================================================

@cli.group()
def keys():
    """Principal key management"""
    pass


@keys.command("create")
@click.option("--show-private", is_flag=True, help="Also print the private key")
def keys_create(show_private):
    """Generate a new principal keypair"""
    from sealbid.crypto import generate_keypair, bytes_to_hex

    kp = generate_keypair()
    click.echo(f"Address:    {kp.address}")
    click.echo(f"Public key: {bytes_to_hex(kp.public_key)}")
    if show_private:
        click.echo(f"Private key: {bytes_to_hex(kp.private_key)}")


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.option("--bid", "bids", type=int, multiple=True, default=(100, 150, 120),
              show_default=True, help="Bid amount (repeatable, one bidder per bid)")
@click.pass_context
def demo(ctx, bids):
    """Run a full auction: bid, reveal, settle, decrypt"""
    from sealbid.crypto import generate_keypair
    from sealbid.core.auction import AuctionEngine
    from sealbid.core.clock import ManualClock
    from sealbid.core.provider import MockProvider
    from sealbid.relayer import InMemoryRelayer

    config = ctx.obj["config"]
    provider = MockProvider()
    clock = ManualClock(start=1)
    relayer = InMemoryRelayer(provider)
    seller = generate_keypair().address
    engine = AuctionEngine.from_config(
        config.model_copy(update={"oracle_public_key": relayer.public_key.hex()}),
        seller=seller,
        provider=provider,
        clock=clock,
        relayer=relayer,
    )

    click.echo("=" * 60)
    click.echo("  SEALBID - CONFIDENTIAL AUCTION DEMO")
    click.echo("=" * 60)
    click.echo(f"Seller:  {seller}")
    click.echo(f"Auction: {engine.address}")
    click.echo(f"Bidding until block {engine.schedule.bid_deadline}, "
               f"reveal until block {engine.schedule.reveal_deadline}")
    click.echo()

    bidders = []
    for amount in bids:
        address = generate_keypair().address
        payload = provider.create_encrypted_input(engine.address, address)
        try:
            payload = getattr(payload, f"add{int(config.bid_width)}")(amount).encrypt()
        except ValueError as e:
            raise click.ClickException(f"Bid {amount} rejected: {e}")
        index, err = engine.submit_bid(address, payload.data, payload.proof)
        if err:
            raise click.ClickException(f"Bid rejected: {err.message}")
        bidders.append(address)
        click.echo(f"  Bid #{index} from {address} (sealed)")

    clock.set(engine.schedule.bid_deadline + 1)
    click.echo()
    for address in bidders:
        ok, err = engine.reveal_bid(address)
        if not ok:
            raise click.ClickException(f"Reveal rejected: {err.message}")
    click.echo(f"  {len(bidders)} bids revealed")

    clock.set(engine.schedule.reveal_deadline + 1)
    settlement, err = engine.settle(seller)
    if err:
        raise click.ClickException(f"Settlement failed: {err.message}")
    click.echo(f"  Winner: {settlement.winner}")

    request_id, err = engine.decrypt_request(settlement.winning_handle, seller)
    if err:
        raise click.ClickException(f"Decryption request failed: {err.message}")
    relayer.drain()
    click.echo(f"  Winning bid (request {request_id}): "
               f"{engine.decrypted_value(settlement.winning_handle)}")


if __name__ == "__main__":
    cli()
