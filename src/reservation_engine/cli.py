#!/usr/bin/env python3
"""CLI tools for operating the Reservation Engine.

Usage:
    python -m reservation_engine.cli serve          # Run the HTTP API
    python -m reservation_engine.cli init-db        # Create database tables
    python -m reservation_engine.cli seed           # Create a demo restaurant
    python -m reservation_engine.cli availability   # Print open start times
    python -m reservation_engine.cli retire         # Run one retirement sweep
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date

from reservation_engine.config import Settings, get_settings
from reservation_engine.core.exceptions import ReservationEngineError
from reservation_engine.core.log import configure_logging, get_logger
from reservation_engine.db.session import Database
from reservation_engine.services import build_reservation_service, build_retirement_scheduler

log = get_logger(__name__)

DEMO_TABLES = [
    (1, 2),
    (2, 2),
    (3, 4),
    (4, 4),
    (5, 6),
    (6, 8),
]


async def _connected(settings: Settings) -> Database:
    database = Database(settings.database)
    await database.connect()
    await database.create_all()
    return database


def serve(args: argparse.Namespace) -> int:
    """Run the API server."""
    from reservation_engine.main import run

    run()
    return 0


def init_db(args: argparse.Namespace) -> int:
    """Create all tables in the configured database."""
    settings = get_settings()

    async def _run() -> None:
        database = await _connected(settings)
        await database.close()

    asyncio.run(_run())
    print(f"[OK] Database initialized: {settings.database.url.split('@')[-1]}")
    return 0


def seed(args: argparse.Namespace) -> int:
    """Create a demo restaurant with a mix of table sizes."""
    settings = get_settings()

    async def _run() -> None:
        database = await _connected(settings)
        try:
            service = build_reservation_service(settings, database)
            restaurant = await service.create_restaurant(
                name=args.name,
                opening_time=args.opening,
                closing_time=args.closing,
                timezone=args.timezone,
            )
            await service.add_tables(restaurant.id, DEMO_TABLES)
            print(f"Restaurant: {restaurant.name} ({restaurant.id})")
            print(f"Hours:      {restaurant.opening_time} - {restaurant.closing_time} {restaurant.timezone}")
            print(f"Tables:     {len(DEMO_TABLES)}")
        finally:
            await database.close()

    asyncio.run(_run())
    return 0


def availability(args: argparse.Namespace) -> int:
    """Print bookable start times for a party."""
    settings = get_settings()
    on_date = date.fromisoformat(args.date) if args.date else None

    async def _run() -> list[str]:
        database = await _connected(settings)
        try:
            service = build_reservation_service(settings, database)
            result = await service.check_availability(
                args.restaurant_id,
                party_size=args.party_size,
                duration_minutes=args.duration,
                on_date=on_date,
            )
            return result.slots
        finally:
            await database.close()

    slots = asyncio.run(_run())
    if not slots:
        print("No availability")
        return 0

    for slot in slots:
        print(slot)
    return 0


def retire(args: argparse.Namespace) -> int:
    """Complete every reservation whose end time has passed."""
    settings = get_settings()

    async def _run() -> int | None:
        database = await _connected(settings)
        try:
            scheduler = build_retirement_scheduler(settings, database)
            return await scheduler.run_once()
        finally:
            await database.close()

    completed = asyncio.run(_run())
    if completed is None:
        print("[FAIL] Retirement sweep did not finish, see log")
        return 1

    print(f"[OK] Completed {completed} reservation(s)")
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Reservation Engine CLI Tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # serve
    subparsers.add_parser("serve", help="Run the HTTP API")

    # init-db
    subparsers.add_parser("init-db", help="Create database tables")

    # seed
    seed_parser = subparsers.add_parser("seed", help="Create a demo restaurant")
    seed_parser.add_argument("--name", default="Demo Bistro", help="Restaurant name")
    seed_parser.add_argument("--opening", default="11:00", help="Opening time (HH:MM)")
    seed_parser.add_argument("--closing", default="23:00", help="Closing time (HH:MM)")
    seed_parser.add_argument("--timezone", default=None, help="IANA timezone name")

    # availability
    avail_parser = subparsers.add_parser("availability", help="Print open start times")
    avail_parser.add_argument("restaurant_id", help="Restaurant ID")
    avail_parser.add_argument("--party-size", type=int, default=2, help="Number of guests (default: 2)")
    avail_parser.add_argument("--duration", type=int, default=None, help="Minutes (default: policy default)")
    avail_parser.add_argument("--date", default=None, help="YYYY-MM-DD (default: today)")

    # retire
    subparsers.add_parser("retire", help="Run one retirement sweep")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    settings = get_settings()
    configure_logging(settings, service_name="reservation-engine-cli")

    commands = {
        "serve": serve,
        "init-db": init_db,
        "seed": seed,
        "availability": availability,
        "retire": retire,
    }

    try:
        return commands[args.command](args)
    except ReservationEngineError as e:
        log.error("Command failed", command=args.command, error=str(e))
        print(f"[FAIL] {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
