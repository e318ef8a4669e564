"""
Main CLI application for SwipeHouse
Provides commands for searching listings, commute analysis and cache upkeep
"""

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from swipehouse.commute.cache import CommuteCache
from swipehouse.commute.client import MapboxClient
from swipehouse.commute.models import CommuteMode
from swipehouse.commute.service import CommuteService, apply_commute_durations
from swipehouse.config.models import Settings
from swipehouse.config.parser import ConfigParser, ConfigParserError, load_settings
from swipehouse.core.models import Listing, ListingMode, LocalFilters
from swipehouse.core.storage import CacheStorage, MemoryCacheStorage, SQLiteCacheStorage
from swipehouse.listings.cache import ListingCache
from swipehouse.listings.client import ListingsAPIError, RentCastClient
from swipehouse.listings.models import RemoteFilters, SearchResult
from swipehouse.listings.service import ListingService

# Initialize Typer app
app = typer.Typer(
    name="swipehouse",
    help="SwipeHouse - Listing search with cached results and commute times",
    add_completion=False,
)

# Console for rich output
console = Console()


def get_settings(config: Optional[Path]) -> Settings:
    try:
        return load_settings(config)
    except ConfigParserError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)


def build_storage(settings: Settings, namespace: str) -> CacheStorage:
    """Durable storage when a database URL is configured, memory otherwise"""
    if settings.cache_db_url:
        return SQLiteCacheStorage(
            settings.cache_db_url, namespace=namespace, max_bytes=settings.cache_max_bytes
        )
    return MemoryCacheStorage(max_bytes=settings.cache_max_bytes)


def build_listing_cache(settings: Settings, client: Optional[RentCastClient] = None) -> ListingCache:
    return ListingCache(
        client=client,
        storage=build_storage(settings, "listings"),
        fresh_ttl=settings.fresh_ttl,
        stale_ttl=settings.stale_ttl,
        background_refresh_after=settings.background_refresh_after,
    )


def build_listing_service(settings: Settings) -> ListingService:
    client = RentCastClient(
        api_key=settings.rentcast_api_key,
        base_url=settings.rentcast_base_url,
        timeout=settings.request_timeout,
    )
    return ListingService(build_listing_cache(settings, client))


def build_commute_service(settings: Settings) -> CommuteService:
    client = MapboxClient(
        access_token=settings.mapbox_token,
        base_url=settings.mapbox_base_url,
        timeout=settings.request_timeout,
    )
    return CommuteService(
        client,
        cache=CommuteCache(build_storage(settings, "commute")),
        chunk_size=settings.matrix_chunk_size,
        max_concurrent=settings.matrix_max_concurrent,
    )


def build_filters(
    settings: Settings,
    mode: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    radius: Optional[float] = None,
    price: Optional[str] = None,
    bedrooms: Optional[str] = None,
    bathrooms: Optional[str] = None,
    limit: Optional[int] = None,
) -> RemoteFilters:
    """
    Merge command line options over the configured default filters

    A city search drops the default search centre and radius, and a mode
    other than the default one drops the default price range.
    """
    values = settings.default_filters.model_dump()
    if city:
        values.update(latitude=None, longitude=None, radius=None)
    if mode is not None and ListingMode(mode) != settings.default_filters.mode:
        values.update(price=None)

    overrides = {
        "mode": mode,
        "city": city,
        "state": state,
        "latitude": latitude,
        "longitude": longitude,
        "radius": radius,
        "price": price,
        "bedrooms": bedrooms,
        "bathrooms": bathrooms,
        "limit": limit,
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return RemoteFilters.model_validate(values)


def parse_mode(mode: str) -> ListingMode:
    try:
        return ListingMode(mode.lower())
    except ValueError:
        console.print(f"[red]Invalid mode: {mode}[/red]")
        console.print("Valid options: rent, buy")
        raise typer.Exit(1)


def parse_commute_mode(mode: str) -> CommuteMode:
    try:
        return CommuteMode(mode.lower())
    except ValueError:
        console.print(f"[red]Invalid commute mode: {mode}[/red]")
        console.print(f"Valid options: {', '.join(m.value for m in CommuteMode)}")
        raise typer.Exit(1)


def format_price(listing: Listing) -> str:
    suffix = "/mo" if listing.type == ListingMode.RENT else ""
    return f"${listing.price:,.0f}{suffix}"


def render_listings(listings: List[Listing], title: str, show_commute: bool = False):
    table = Table(title=title)
    table.add_column("Price", justify="right", width=12)
    table.add_column("Beds", justify="center", width=5)
    table.add_column("Baths", justify="center", width=5)
    table.add_column("Neighborhood", style="cyan")
    table.add_column("Address")
    table.add_column("Quality", width=8)
    table.add_column("Match", justify="right", width=6)
    if show_commute:
        table.add_column("Commute", justify="right", width=8)

    for listing in listings:
        row = [
            format_price(listing),
            f"{listing.beds:g}",
            f"{listing.baths:g}",
            listing.neighborhood or "",
            listing.address or "",
            listing.data_quality.value if listing.data_quality else "",
            f"{listing.match_score}%",
        ]
        if show_commute:
            row.append(f"{listing.commute_mins}min" if listing.commute_mins else "N/A")
        table.add_row(*row)

    console.print(table)


def render_search_summary(result: SearchResult):
    stats = result.stats
    console.print(
        f"[green]{stats.accepted} accepted[/green], "
        f"[yellow]{stats.rejected} rejected[/yellow], "
        f"{stats.deduped_count} duplicates removed "
        f"(high {stats.high_quality} / medium {stats.medium_quality} / low {stats.low_quality})"
    )

    if not result.from_cache:
        console.print("[dim]Fetched from RentCast[/dim]")
    elif result.stale:
        status = "refreshing in background" if result.refreshing else "refresh failed"
        console.print(f"[yellow]Served stale cached results ({status})[/yellow]")
    else:
        console.print("[dim]Served from cache[/dim]")


@app.command()
def search(
    mode: str = typer.Option("rent", "--mode", help="Listing mode (rent/buy)"),
    city: Optional[str] = typer.Option(None, "--city", help="City to search"),
    state: Optional[str] = typer.Option(None, "--state", help="Two-letter state code"),
    latitude: Optional[float] = typer.Option(None, "--lat", help="Search centre latitude"),
    longitude: Optional[float] = typer.Option(None, "--lng", help="Search centre longitude"),
    radius: Optional[float] = typer.Option(None, "--radius", help="Search radius in miles"),
    price: Optional[str] = typer.Option(None, "--price", help="Price range, e.g. 2200-5200"),
    bedrooms: Optional[str] = typer.Option(None, "--beds", help="Bedroom range, e.g. 1-3"),
    bathrooms: Optional[str] = typer.Option(None, "--baths", help="Bathroom range, e.g. 1-2"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum listings to fetch"),
    pets: bool = typer.Option(False, "--pets", help="Must allow pets"),
    laundry: bool = typer.Option(False, "--laundry", help="Must have laundry"),
    elevator: bool = typer.Option(False, "--elevator", help="Must have an elevator"),
    no_walkup: bool = typer.Option(False, "--no-walkup", help="Exclude walk-ups"),
    commute_address: Optional[str] = typer.Option(None, "--commute-address", help="Add commute times to this address"),
    commute_mode: str = typer.Option("driving", "--commute-mode", help="Commute mode (driving/walking/cycling/transit)"),
    show: int = typer.Option(20, "--show", help="Listings to display"),
    config: Optional[Path] = typer.Option(None, "--config", help="Settings file (YAML/JSON)"),
):
    """
    Search listings through the response cache

    Examples:
        swipehouse search --price 2500-4000 --beds 2-3 --pets
        swipehouse search --city Brooklyn --state NY --mode buy
        swipehouse search --commute-address "Union Square, New York" --commute-mode walking
    """
    listing_mode = parse_mode(mode)
    travel_mode = parse_commute_mode(commute_mode)
    settings = get_settings(config)

    filters = build_filters(
        settings, listing_mode.value, city, state, latitude, longitude,
        radius, price, bedrooms, bathrooms, limit,
    )
    local_filters = LocalFilters(
        pets_required=pets,
        laundry_required=laundry,
        elevator_required=elevator,
        no_walkup=no_walkup,
    )

    async def run_search():
        try:
            service = build_listing_service(settings)
        except ValueError as e:
            console.print(f"[red]RentCast API error: {e}[/red]")
            console.print("Please set the RENTCAST_API_KEY environment variable")
            raise typer.Exit(1)

        result = await service.search(filters, local_filters)
        listings = result.listings

        if commute_address and listings:
            try:
                commute_service = build_commute_service(settings)
            except ValueError as e:
                console.print(f"[red]Mapbox API error: {e}[/red]")
                console.print("Please set the MAPBOX_TOKEN environment variable")
                raise typer.Exit(1)

            durations = await commute_service.get_commute_durations(
                commute_address, listings, travel_mode
            )
            if durations:
                listings = apply_commute_durations(listings, durations)
            else:
                console.print(f"[yellow]Could not compute commutes to {commute_address}[/yellow]")

        if not listings:
            console.print("[yellow]No listings matched your search[/yellow]")
        else:
            render_listings(
                listings[:show],
                f"\n{len(listings)} listings",
                show_commute=bool(commute_address),
            )
        render_search_summary(result)

        # Let a background refresh land before the loop closes
        await service.cache.wait_for_refreshes()

    try:
        asyncio.run(run_search())
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]Search cancelled by user[/yellow]")
        raise typer.Exit(0)
    except ListingsAPIError as e:
        console.print(f"[red]Listing search failed: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def commute(
    address: str = typer.Argument(..., help="Commute destination address"),
    transport: str = typer.Option("driving", "--transport", help="Commute mode (driving/walking/cycling/transit)"),
    mode: str = typer.Option("rent", "--mode", help="Listing mode (rent/buy)"),
    city: Optional[str] = typer.Option(None, "--city", help="City to search"),
    state: Optional[str] = typer.Option(None, "--state", help="Two-letter state code"),
    price: Optional[str] = typer.Option(None, "--price", help="Price range, e.g. 2200-5200"),
    bedrooms: Optional[str] = typer.Option(None, "--beds", help="Bedroom range, e.g. 1-3"),
    max_time: Optional[int] = typer.Option(None, "--max-time", help="Maximum commute in minutes"),
    show: int = typer.Option(20, "--show", help="Listings to display"),
    config: Optional[Path] = typer.Option(None, "--config", help="Settings file (YAML/JSON)"),
):
    """
    Commute times from the current search results to an address

    Examples:
        swipehouse commute "Union Square, New York" --transport walking
        swipehouse commute "1 World Trade Center" --max-time 30 --beds 2-3
    """
    listing_mode = parse_mode(mode)
    travel_mode = parse_commute_mode(transport)
    settings = get_settings(config)
    filters = build_filters(
        settings, listing_mode.value, city, state, price=price, bedrooms=bedrooms
    )

    async def analyze_commutes():
        try:
            service = build_listing_service(settings)
            commute_service = build_commute_service(settings)
        except ValueError as e:
            console.print(f"[red]API error: {e}[/red]")
            console.print("Please set RENTCAST_API_KEY and MAPBOX_TOKEN environment variables")
            raise typer.Exit(1)

        result = await service.search(filters)
        if not result.listings:
            console.print("[yellow]No listings found for the current search[/yellow]")
            return

        console.print(f"[cyan]Found {len(result.listings)} listings to analyze[/cyan]")
        durations = await commute_service.get_commute_durations(address, result.listings, travel_mode)
        if not durations:
            console.print(f"[yellow]Could not compute commutes to {address}[/yellow]")
            return

        listings = [
            listing
            for listing in apply_commute_durations(result.listings, durations)
            if listing.commute_mins and (max_time is None or listing.commute_mins <= max_time)
        ]
        if not listings:
            console.print(f"[yellow]No listings within {max_time} minutes by {travel_mode.value}[/yellow]")
            return

        listings.sort(key=lambda listing: listing.commute_mins)
        render_listings(
            listings[:show],
            f"\nCommutes to {address} by {travel_mode.value}",
            show_commute=True,
        )
        console.print(f"[green]✓ Computed {len(durations)} of {len(result.listings)} commutes[/green]")

        await service.cache.wait_for_refreshes()

    try:
        asyncio.run(analyze_commutes())
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]Commute analysis cancelled by user[/yellow]")
        raise typer.Exit(0)
    except ListingsAPIError as e:
        console.print(f"[red]Listing search failed: {e}[/red]")
        raise typer.Exit(1)


@app.command(name="cache-stats")
def cache_stats(
    config: Optional[Path] = typer.Option(None, "--config", help="Settings file (YAML/JSON)"),
):
    """Show listing cache statistics"""
    settings = get_settings(config)
    stats = build_listing_cache(settings).stats()

    table = Table(title="\nListing Cache")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Entries", str(stats.entries))
    table.add_row("Oldest entry", f"{stats.oldest_age / 3600:.1f}h" if stats.entries else "N/A")
    table.add_row("Total size", f"{stats.total_size / 1024:.1f} KB")
    console.print(table)


@app.command(name="cache-clear")
def cache_clear(
    config: Optional[Path] = typer.Option(None, "--config", help="Settings file (YAML/JSON)"),
    confirm: bool = typer.Option(False, "--yes", help="Skip confirmation prompt"),
):
    """Remove cached listing responses and the last commute result"""
    if not confirm:
        typer.confirm("Clear all cached listings and commutes?", abort=True)

    settings = get_settings(config)
    build_listing_cache(settings).clear()
    CommuteCache(build_storage(settings, "commute")).clear()
    console.print("[green]✓ Cache cleared[/green]")


@app.command(name="init-config")
def init_config(
    output: Path = typer.Option(Path("swipehouse.yaml"), "--output", "-o", help="Output file path"),
    config: Optional[Path] = typer.Option(None, "--config", help="Settings file to start from"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Overwrite existing file"),
):
    """
    Write the current settings to a configuration file

    Credentials are left out; keep them in the environment or .env.

    Examples:
        swipehouse init-config
        swipehouse init-config --output settings.json
    """
    if output.exists() and not overwrite:
        console.print(f"[red]Configuration file already exists: {output}[/red]")
        console.print("Use --overwrite to replace it")
        raise typer.Exit(1)

    settings = get_settings(config)
    try:
        ConfigParser.save_file(settings, output)
    except ConfigParserError as e:
        console.print(f"[red]Error creating configuration: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ Configuration written: {output}[/green]")


@app.callback()
def callback():
    """
    SwipeHouse - Listing search with cached results and commute times

    Searches RentCast listings through a stale-while-revalidate cache,
    validates and deduplicates them, and computes commute times via Mapbox.
    """
    pass


def main():
    """Main entry point for CLI"""
    # Load environment variables
    from dotenv import load_dotenv
    load_dotenv()

    app()


if __name__ == "__main__":
    main()
