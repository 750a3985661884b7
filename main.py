#!/usr/bin/env python3
"""
Locais: Main Entry Point

Locates you, fetches the points of interest, filters them by category,
WC availability and distance, and writes a map + card dashboard.
Also votes, saves favorites and logs in against the Locais API.

Usage:
    python main.py                                  # Browse everything near you
    python main.py browse --category Praia --wc     # Beaches with a WC
    python main.py browse --distance 20 --open      # Within 20 km, open in browser
    python main.py --demo browse --lat 32.65 --lon -16.91
    python main.py login you@example.com
    python main.py like <location-id>
    python main.py favorite <location-id>
    python main.py favorites

Environment Variables:
    LOCAIS_API_URL  API base URL
    LOCAIS_ORIGIN_LAT/LON  fixed origin instead of an IP lookup
    LOCAIS_SESSION_FILE  where the login token is kept
"""

import argparse
import asyncio
import getpass
import logging
import os
import random
import sys
import webbrowser

from app import AppSession
from config import AppConfig
from dashboard_generator import generate_dashboard
from errors import FetchFailed, RequestFailed, Unauthenticated
from fetchers import FavoritesFetcher, LocationRecord, LocationStore
from filters import FilterEngine
from geo import GeoLocator, StaticPositionProvider, provider_from_config
from projector import ViewProjector
from session import AuthClient, SessionStore
from votes import VoteClient

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def generate_demo_data() -> list[LocationRecord]:
    """Sample locations around Madeira for trying the dashboard without the API."""
    places = [
        ("Praia Formosa",          32.6437, -16.9474, "Praia",    ["WC", "Bar"]),
        ("Praia do Seixal",        32.8228, -17.1071, "Praia",    ["WC"]),
        ("Praia da Calheta",       32.7186, -17.1772, "Praia",    ["WC", "Estacionamento"]),
        ("Porto Moniz",            32.8682, -17.1685, "Natureza", ["WC"]),
        ("Pico do Arieiro",        32.7355, -16.9287, "Natureza", []),
        ("Fanal",                  32.8097, -17.1423, "Natureza", []),
        ("Vereda do Areeiro",      32.7353, -16.9285, "Trilho",   []),
        ("Levada do Caldeirão Verde", 32.7926, -16.9039, "Trilho", ["WC"]),
        ("Vereda da Ponta de São Lourenço", 32.7438, -16.7027, "Trilho", []),
        ("Parque Florestal das Queimadas", 32.7837, -16.9047, "Merendas", ["WC", "Churrasqueira"]),
        ("Pináculo",               32.6767, -16.8734, "Merendas", ["Churrasqueira"]),
        ("Sé do Funchal",          32.6479, -16.9086, "Cultura",  []),
        ("Mercado dos Lavradores", 32.6497, -16.9040, "Cultura",  ["WC"]),
        ("Convento de Santa Clara", 32.6520, -16.9117, "Cultura", []),
    ]

    records = []
    for i, (title, lat, lng, category, types) in enumerate(places):
        records.append(LocationRecord(
            id=f"demo_{i}",
            latitude=lat,
            longitude=lng,
            title=title,
            description=f"{category} · {title}",
            image_ref=f"https://picsum.photos/seed/locais{i}/400/300",
            category_tags=(category,),
            amenity_tags=tuple(types),
            likes=random.randint(0, 40),
            dislikes=random.randint(0, 10),
        ))
    return records


def build_session(config: AppConfig, args) -> AppSession:
    credentials = SessionStore(config.session_file)
    engine = FilterEngine(config.filters)

    if args.lat is not None and args.lon is not None:
        provider = StaticPositionProvider(args.lat, args.lon, config.geo.origin_accuracy_m)
    else:
        provider = provider_from_config(config.geo, allow_network=not args.demo)

    session = AppSession(
        store=LocationStore(config.api),
        engine=engine,
        projector=ViewProjector(default_title=config.filters.default_title),
        locator=GeoLocator(provider, config.geo.timeout_seconds),
        votes=VoteClient(config.api, credentials),
    )

    criteria = session.criteria
    if args.category:
        criteria = engine.select_category(criteria, args.category)
    if args.wc:
        criteria = engine.set_amenity_only(criteria, True)
    if args.distance is not None:
        criteria = engine.set_distance(criteria, args.distance)
    session.criteria = criteria
    return session


def print_notices(projector: ViewProjector) -> None:
    for notice in projector.notices:
        print(f"⚠️  {notice}")


async def run_browse(args, config: AppConfig) -> int:
    session = build_session(config, args)
    try:
        if args.demo:
            logger.info("Running in DEMO mode with sample data...")
            session.store.seed(generate_demo_data())
            await session.start(locate=not args.no_locate, fetch=False)
        else:
            await session.start(locate=not args.no_locate)

        outcome = session.last_outcome
        logger.info(f"{outcome.title}: {len(outcome.records)} of {len(session.store.current())} locations shown")
        if outcome.awaiting_location:
            logger.info("No position fix; distance filter not applied")

        html_path = generate_dashboard(session.projector, config, session.criteria)
        logger.info(f"Dashboard saved to: {html_path}")
        logger.info(f"JSON data saved to: {os.path.join(config.output_dir, config.data_filename)}")
    finally:
        session.close()

    print_notices(session.projector)
    if args.open:
        webbrowser.open(f"file://{os.path.abspath(html_path)}")

    print(f"\n✅ Dashboard ready: {html_path}")
    return 0 if session.store.current() else 1


async def run_vote(args, config: AppConfig) -> int:
    session = build_session(config, args)
    try:
        await session.start(locate=False)
        result = await session.handle_action(args.location_id, args.command)
        if args.command == "favorite":
            ok = result is True
        else:
            ok = result is not None
            if ok:
                print(f"{result.title}: 👍 {result.likes}  👎 {result.dislikes}")
        if ok:
            generate_dashboard(session.projector, config, session.criteria)
    finally:
        session.close()

    print_notices(session.projector)
    return 0 if ok else 1


async def run_favorites(args, config: AppConfig) -> int:
    fetcher = FavoritesFetcher(config.api, SessionStore(config.session_file))
    projector = ViewProjector(empty_message="No favorite locations found.", default_title="Favoritos")
    try:
        records = await fetcher.fetch()
    except Unauthenticated:
        print("Please login first: python main.py login <email>")
        return 1
    except FetchFailed as e:
        logger.error(f"Error fetching favorite locations: {e}")
        return 1
    finally:
        fetcher.close()

    projector.render_full(records)
    html_path = generate_dashboard(projector, config, filename=config.favorites_filename, show_map=False)
    print(f"\n✅ {len(records)} favorites: {html_path}")
    return 0


async def run_auth(args, config: AppConfig) -> int:
    client = AuthClient(config.api, SessionStore(config.session_file))
    password = getpass.getpass("Password: ")
    try:
        if args.command == "register":
            await client.register(args.name, args.email, password)
            print("User registered successfully. Now run: python main.py login <email>")
        else:
            await client.login(args.email, password)
            print("User logged in successfully")
    except (Unauthenticated, RequestFailed) as e:
        logger.error(f"{args.command.capitalize()} failed: {e}")
        return 1
    finally:
        client.close()
    return 0


def build_parser(config: AppConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Locais: points of interest near you")
    parser.add_argument("--demo", action="store_true", help="Use sample data (no API needed)")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")
    # Bare "main.py" behaves like "main.py browse"
    parser.set_defaults(command="browse", category=None, wc=False, distance=None,
                        lat=None, lon=None, no_locate=False, open=False)

    browse = sub.add_parser("browse", help="Filter locations and write the dashboard (default)")
    browse.add_argument("--category", choices=config.filters.categories, help="Show one category only")
    browse.add_argument("--wc", action="store_true", help="Only locations with a WC")
    browse.add_argument("--distance", type=float,
                        help=f"Max distance in km (default {config.filters.default_distance_km:g})")
    browse.add_argument("--lat", type=float, help="Origin latitude (skips IP lookup)")
    browse.add_argument("--lon", type=float, help="Origin longitude (skips IP lookup)")
    browse.add_argument("--no-locate", action="store_true", help="Don't try to get a position fix")
    browse.add_argument("--open", action="store_true", help="Open dashboard in browser after generating")

    for name, text in (("like", "Like a location"), ("dislike", "Dislike a location"),
                       ("favorite", "Save a location to favorites")):
        p = sub.add_parser(name, help=text)
        p.add_argument("location_id")

    sub.add_parser("favorites", help="Render your favorite locations")

    login = sub.add_parser("login", help="Log in and remember the token")
    login.add_argument("email")

    register = sub.add_parser("register", help="Create an account")
    register.add_argument("name")
    register.add_argument("email")

    return parser


def main(argv=None) -> int:
    config = AppConfig()
    parser = build_parser(config)
    args = parser.parse_args(argv)
    if args.demo and args.command not in (None, "browse"):
        parser.error(f"--demo only works with browse, not {args.command}")
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    os.makedirs(config.output_dir, exist_ok=True)

    if args.command in (None, "browse"):
        runner = run_browse
    elif args.command in ("like", "dislike", "favorite"):
        runner = run_vote
    elif args.command == "favorites":
        runner = run_favorites
    else:
        runner = run_auth
    return asyncio.run(runner(args, config))


if __name__ == "__main__":
    sys.exit(main())
