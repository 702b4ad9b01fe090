"""
Auction shell
"""
from pathlib import Path

import click
from click_shell import shell  # type: ignore

from gavel.apps.auction.commands.search_listings import ListingSortField
from gavel.apps.auction.domain.model import Amount, ListingId
from gavel.apps.auction.notifications import bid_outcome_notification
from gavel.apps.auction.services.auction_engine import ListingNotFound
from gavel.apps.auction.store.auction_store import BidOutcome
from gavel.apps.auction_shell.app import App

__app: App | None = None


class AppNotInitialized(Exception):
    pass


def get_app() -> App:
    if __app is None:
        raise AppNotInitialized
    return __app


@shell(
    prompt="gavel > ",
    intro="Gavel Auction Shell",
)
@click.option(
    "--config-file",
    required=False,
    type=click.Path(exists=True, resolve_path=True, readable=True, path_type=Path),
    help="TOML engine config",
)
@click.option(
    "--listings-file",
    required=False,
    type=click.Path(exists=True, resolve_path=True, readable=True, path_type=Path),
    help="TOML listings - the demo catalog is loaded if not specified",
)
def app(config_file: Path | None = None, listings_file: Path | None = None):
    global __app  # pylint: disable=global-statement

    __app = App.from_config_file(config_file, listings_file)


@app.command
@click.option("--text", default="", help="search title and description")
@click.option("--category", default=None)
@click.option(
    "--sort",
    type=click.Choice([field.name.lower() for field in ListingSortField]),
    default=ListingSortField.ENDING_SOON.name.lower(),
)
def list_listings(text: str, category: str | None, sort: str):
    """
    Lists the catalog
    """
    summaries = get_app().list_listings(
        text=text,
        category=category,
        sort=ListingSortField[sort.upper()],
    )
    for summary in summaries:
        urgency = " (!)" if summary.is_low_time else ""
        click.echo(
            f"[{summary.listing_id}] {summary.title} | {summary.status.label} | "
            f"${summary.current_bid:,} | {summary.bid_count} bids | {summary.time_left}{urgency}"
        )


@app.command
@click.argument("listing_id")
def show_listing(listing_id: str):
    """
    Shows the listing details and bid history
    """
    try:
        detail = get_app().show_listing(ListingId(listing_id))
    except ListingNotFound:
        click.echo(f"listing not found: {listing_id}")
        return

    summary = detail.summary
    click.echo(f"{summary.title} [{summary.status.label}] {summary.category}")
    click.echo(summary.description)
    click.echo(f"Seller: {detail.seller.name} ({detail.seller.rating}/5)")
    click.echo(f"Current bid: ${summary.current_bid:,}  Time left: {summary.time_left}")
    if summary.bidding_open:
        click.echo(
            f"Min bid: ${detail.minimum_bid:,}  Suggested bid: ${summary.suggested_bid:,}"
        )
    click.echo("Bid history:")
    for entry in detail.bid_history:
        click.echo(
            f"  {entry.bidder} ${entry.amount:,} {entry.timestamp.isoformat()} {entry.proof}"
        )


def bid_message(outcome: BidOutcome) -> str:
    notification = bid_outcome_notification(outcome)
    return f"{notification.title}: {notification.description}"


@app.command
@click.argument("listing_id")
@click.argument("amount", type=click.INT)
def bid(listing_id: str, amount: int):
    """
    Places a bid
    """
    outcome = get_app().bid(ListingId(listing_id), Amount(amount))
    click.echo(bid_message(outcome))


@app.command
@click.argument("listing_id")
def countdown(listing_id: str):
    """
    Shows the time left for the listing
    """
    try:
        current = get_app().countdown(ListingId(listing_id))
    except ListingNotFound:
        click.echo(f"listing not found: {listing_id}")
        return

    if current.is_expired:
        click.echo("ended")
    else:
        click.echo(f"{current.display}{' - ending soon' if current.is_low_time else ''}")


if __name__ == "__main__":
    app()  # pylint: disable=no-value-for-parameter
