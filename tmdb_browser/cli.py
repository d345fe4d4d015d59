"""
Command-line interface for the TMDB browser.

Provides commands for:
- test: Check the API credential and connectivity
- home: Top rated movies with a featured pick
- list: Trending / top rated movies or TV series, page by page
- search: Search movies and TV series
- movie / tv / episode: Detail views
- watchlist: Show, add and remove saved items
"""

import argparse
import random
import sys
from typing import List, Optional

from .client import TMDBClient
from .config import Config
from .exceptions import LoadError, TMDBError
from .loaders import ScreenLoader
from .models import MediaRecord, MediaType
from .pagination import Listing, PaginatedListController, TimeWindow, listing_fetcher
from .search import SearchController
from .storage import FileStorage
from .utils import print_header, print_section, print_status_table, progress_bar, truncate_string
from .watchlist import WatchlistStore


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with all commands."""
    parser = argparse.ArgumentParser(
        prog="tmdb_browser",
        description="Browse TMDB movies and TV series and keep a local watchlist",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check the token
  python -m tmdb_browser test

  # Trending TV series this week, 3 pages
  python -m tmdb_browser list tv trending --time-window week --pages 3

  # Search
  python -m tmdb_browser search "Inception"

  # Save a movie
  python -m tmdb_browser watchlist add-movie 27205
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("test", help="Test the TMDB connection")
    subparsers.add_parser("home", help="Top rated movies with a featured pick")

    list_parser = subparsers.add_parser("list", help="Show a trending or top rated listing")
    list_parser.add_argument("media", choices=[MediaType.movie.value, MediaType.tv.value])
    list_parser.add_argument("listing", choices=[l.value for l in Listing])
    list_parser.add_argument(
        "--time-window",
        choices=[w.value for w in TimeWindow],
        default=TimeWindow.day.value,
        help="Trending window (default: day)",
    )
    list_parser.add_argument("--pages", type=int, default=1, help="Number of pages to load")

    search_parser = subparsers.add_parser("search", help="Search movies and TV series")
    search_parser.add_argument("query", help="Search text")
    search_parser.add_argument("--pages", type=int, default=1, help="Number of pages to load")

    movie_parser = subparsers.add_parser("movie", help="Show movie details")
    movie_parser.add_argument("movie_id", type=int)

    tv_parser = subparsers.add_parser("tv", help="Show TV series details")
    tv_parser.add_argument("tv_id", type=int)
    tv_parser.add_argument("--season", type=int, help="Season to list episodes for (default: first)")

    episode_parser = subparsers.add_parser("episode", help="Show episode details")
    episode_parser.add_argument("tv_id", type=int)
    episode_parser.add_argument("season", type=int)
    episode_parser.add_argument("episode", type=int)

    watchlist_parser = subparsers.add_parser("watchlist", help="Manage the local watchlist")
    watchlist_sub = watchlist_parser.add_subparsers(dest="action", help="Watchlist actions")
    watchlist_sub.add_parser("show", help="List saved items")
    for action in ("add-movie", "remove-movie", "add-tv", "remove-tv"):
        p = watchlist_sub.add_parser(action)
        p.add_argument("item_id", type=int)
    for action in ("add-episode", "remove-episode"):
        p = watchlist_sub.add_parser(action)
        p.add_argument("tv_id", type=int)
        p.add_argument("season", type=int)
        p.add_argument("episode", type=int)

    return parser


def _record_line(record: MediaRecord, index: int, locale: str) -> str:
    summary = record.summary(locale)
    kind = "TV" if summary.kind is MediaType.tv else "Movie"
    return f"  [{index}] {truncate_string(summary.title, 40)} ({summary.date}) - {kind} {summary.id} - {summary.rating}"


def cmd_test(client: TMDBClient) -> int:
    """Run connection test."""
    print_header("Connection Test")
    if client.test_connection():
        print("\nTMDB API: OK")
        return 0
    print("\nTMDB API: FAILED (check TMDB_BEARER_TOKEN)")
    return 1


def cmd_home(loader: ScreenLoader, config: Config) -> int:
    print_header("Top Rated Movies")
    feed = loader.load_home_feed(random.Random())
    if feed.featured:
        print(f"\nFeatured: {feed.featured.title} ({feed.featured.formatted_release_date(config.date_locale)})")
        print(f"  {feed.featured.backdrop_url() or 'No backdrop'}")
    print()
    for i, movie in enumerate(feed.top_rated, 1):
        print(_record_line(movie, i, config.date_locale))
    return 0


def cmd_list(client: TMDBClient, config: Config, args) -> int:
    fetch = listing_fetcher(client, MediaType(args.media), Listing(args.listing), TimeWindow(args.time_window))
    controller = PaginatedListController(fetch)

    title = f"{'Trending' if args.listing == Listing.trending.value else 'Top Rated'} {'Movies' if args.media == 'movie' else 'TV Series'}"
    print_header(title)

    for _ in progress_bar(range(max(args.pages, 1)), desc="Pages"):
        if not controller.load_next_page():
            break

    state = controller.state
    if state.error and not state.items:
        print(f"\n{state.error}")
        return 1

    print()
    for i, record in enumerate(state.items, 1):
        print(_record_line(record, i, config.date_locale))
    print(f"\nPage {state.page} of {state.total_pages}")
    if state.error:
        print(state.error)
    return 0


def cmd_search(client: TMDBClient, config: Config, args) -> int:
    print_header("Search")
    search = SearchController(client, debounce_seconds=config.search_debounce_seconds)
    try:
        search.set_query(args.query)
        search.submit()
        for _ in range(max(args.pages, 1) - 1):
            if not search.load_more():
                break
        state = search.state
    finally:
        search.close()

    if state.error and not state.items:
        print(f"\n{state.error}")
        return 1
    if not state.items:
        print(f"\nNo movies or TV series found for '{args.query}'")
        return 0

    print(f"\nFound {len(state.items)} results:\n")
    for i, record in enumerate(state.items, 1):
        print(_record_line(record, i, config.date_locale))
    return 0


def cmd_movie(loader: ScreenLoader, store: WatchlistStore, config: Config, args) -> int:
    details = loader.load_movie(args.movie_id)
    movie = details.movie
    print_header(movie.title)
    print_status_table(
        {
            "Release date": movie.formatted_release_date(config.date_locale),
            "Rating": movie.rating_percentage(),
            "Runtime": f"{movie.runtime} min" if movie.runtime else "Unknown",
            "Genres": ", ".join(movie.genres) or "-",
            "Poster": movie.poster_url() or "-",
            "In watchlist": "Yes" if store.is_movie_in_watchlist(movie.id) else "No",
        },
        title="Movie",
    )
    if movie.overview:
        print(movie.overview)
    _print_media(details.images.gallery_urls("backdrops", "w500"), details.videos)
    return 0


def cmd_tv(loader: ScreenLoader, store: WatchlistStore, config: Config, args) -> int:
    details = loader.load_tv_series(args.tv_id)
    series = details.series
    print_header(series.name)
    print_status_table(
        {
            "First aired": series.formatted_first_air_date(config.date_locale),
            "Last aired": series.formatted_last_air_date(config.date_locale),
            "Rating": series.rating_percentage(),
            "Seasons": series.number_of_seasons or "-",
            "Episodes": series.number_of_episodes or "-",
            "Status": series.status or "-",
            "In watchlist": "Yes" if store.is_tv_series_in_watchlist(series.id) else "No",
        },
        title="TV Series",
    )
    if series.overview:
        print(series.overview)
    _print_media(details.images.gallery_urls("backdrops", "w500"), details.videos)

    season_number = args.season if args.season is not None else details.selected_season
    if season_number is None:
        return 0

    episodes = loader.load_season_episodes(series.id, season_number)
    print_section(f"Season {season_number}")
    for ep in episodes:
        saved = " [SAVED]" if store.is_episode_in_watchlist(series.id, ep.season_number, ep.episode_number) else ""
        print(f"  E{ep.episode_number:02d} {ep.name} ({ep.formatted_air_date(config.date_locale)}) - {ep.rating_percentage()}{saved}")
    return 0


def cmd_episode(loader: ScreenLoader, store: WatchlistStore, config: Config, args) -> int:
    details = loader.load_episode(args.tv_id, args.season, args.episode)
    ep = details.episode
    print_header(ep.name)
    print_status_table(
        {
            "Episode": f"S{ep.season_number:02d}E{ep.episode_number:02d}",
            "Air date": ep.formatted_air_date(config.date_locale),
            "Rating": ep.rating_percentage(),
            "Runtime": ep.formatted_runtime(),
            "Directors": ", ".join(c.name for c in ep.directors()) or "-",
            "Writers": ", ".join(c.name for c in ep.writers()) or "-",
            "In watchlist": "Yes" if store.is_episode_in_watchlist(args.tv_id, args.season, args.episode) else "No",
        },
        title="Episode",
    )
    if ep.overview:
        print(ep.overview)
    _print_media(details.images.gallery_urls("stills", "w500"), details.videos)
    return 0


def _print_media(image_urls: List[str], videos) -> None:
    if image_urls:
        print_section(f"Images ({len(image_urls)})")
        for url in image_urls[:5]:
            print(f"  {url}")
    if videos:
        print_section(f"Videos ({len(videos)})")
        for video in videos:
            print(f"  {video.type}: {video.name} - {video.youtube_url}")


def cmd_watchlist(client: TMDBClient, store: WatchlistStore, config: Config, args) -> int:
    action = args.action or "show"

    if action == "show":
        document = store.get_all()
        print_header("Watchlist")
        print_status_table(document.counts(), title="Saved items")
        if document.movies:
            print_section("Movies")
            for m in document.movies:
                print(f"  {m.id:<8} {m.title} ({m.formatted_date(config.date_locale)}) - {m.rating()}")
        if document.tv_series:
            print_section("TV Series")
            for t in document.tv_series:
                print(f"  {t.id:<8} {t.name} ({t.formatted_date(config.date_locale)}) - {t.rating()}")
        if document.episodes:
            print_section("Episodes")
            for e in document.episodes:
                print(f"  {e.series_name} - {e.season_name} - E{e.episode_number:02d} {e.name}")
        return 0

    if action == "add-movie":
        movie = client.get_movie_details(args.item_id)
        ok = store.add_movie(movie)
        label = movie.title
    elif action == "remove-movie":
        ok = store.remove_movie(args.item_id)
        label = f"movie {args.item_id}"
    elif action == "add-tv":
        series = client.get_tv_details(args.item_id)
        ok = store.add_tv_series(series)
        label = series.name
    elif action == "remove-tv":
        ok = store.remove_tv_series(args.item_id)
        label = f"TV series {args.item_id}"
    elif action == "add-episode":
        series = client.get_tv_details(args.tv_id)
        episode = client.get_tv_episode_details(args.tv_id, args.season, args.episode)
        season_name = next(
            (s.name for s in series.seasons if s.season_number == args.season),
            f"Season {args.season}",
        )
        ok = store.add_episode(episode, args.tv_id, series.name, season_name)
        label = f"{series.name} {season_name} E{args.episode:02d}"
    elif action == "remove-episode":
        ok = store.remove_episode(args.tv_id, args.season, args.episode)
        label = f"episode {args.tv_id}/{args.season}/{args.episode}"
    else:
        print(f"Unknown watchlist action: {action}")
        return 1

    verb = "Removed" if action.startswith("remove") else "Saved"
    if ok:
        print(f"{verb}: {label}")
        return 0
    print(f"Could not update watchlist for {label} (see log)")
    return 1


def main(args: Optional[list] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 0

    try:
        config = Config.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}")
        print("\nMake sure your .env file contains:")
        print("  TMDB_BEARER_TOKEN=<your_tmdb_read_access_token>")
        return 1

    client = TMDBClient(config)
    loader = ScreenLoader(client, max_workers=config.max_workers)
    store = WatchlistStore(FileStorage(config.data_dir))

    try:
        if parsed_args.command == "test":
            return cmd_test(client)
        elif parsed_args.command == "home":
            return cmd_home(loader, config)
        elif parsed_args.command == "list":
            return cmd_list(client, config, parsed_args)
        elif parsed_args.command == "search":
            return cmd_search(client, config, parsed_args)
        elif parsed_args.command == "movie":
            return cmd_movie(loader, store, config, parsed_args)
        elif parsed_args.command == "tv":
            return cmd_tv(loader, store, config, parsed_args)
        elif parsed_args.command == "episode":
            return cmd_episode(loader, store, config, parsed_args)
        elif parsed_args.command == "watchlist":
            return cmd_watchlist(client, store, config, parsed_args)
        else:
            parser.print_help()
            return 0

    except KeyboardInterrupt:
        print("\n\nOperation cancelled.")
        return 130
    except (LoadError, TMDBError) as e:
        print(f"\nError: {e}")
        return 1
    finally:
        client.close()


if __name__ == "__main__":
    sys.exit(main())
