"""Main entry point for SkillSwap."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from skillswap import __version__
from skillswap.config.settings import Settings
from skillswap.errors import SkillSwapError
from skillswap.utils.logging import configure_logging


def _positive_int(value: str) -> int:
    hours = int(value)
    if hours <= 0:
        raise argparse.ArgumentTypeError("--hours must be a positive integer")
    return hours


def _print_json(payload: object) -> None:
    def _default(value: object):
        to_dict = getattr(value, "to_dict", None)
        if callable(to_dict):
            return to_dict()
        return str(value)

    print(json.dumps(payload, indent=2, default=_default))


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="skillswap",
        description="SkillSwap: skill matching and time-credit exchanges",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m skillswap init
  python -m skillswap user set alice --name Alice --teach Guitar --learn Python
  python -m skillswap matches alice
  python -m skillswap exchange create --teacher bob --student alice --skill Python --hours 2
  python -m skillswap exchange schedule <id> --at 2025-01-01T10:00:00Z
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set the log level (overrides settings)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to the SQLite database (overrides settings)",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands",
    )

    subparsers.add_parser("init", help="Create the database tables")
    subparsers.add_parser("seed", help="Load the sample skill catalog")

    # Users
    user_parser = subparsers.add_parser("user", help="Create, update or show a profile")
    user_sub = user_parser.add_subparsers(dest="user_cmd")
    user_set = user_sub.add_parser("set", help="Create or update a profile")
    user_set.add_argument("user_id")
    user_set.add_argument("--name")
    user_set.add_argument("--bio")
    user_set.add_argument("--location")
    user_set.add_argument(
        "--teach", action="append", default=None, help="Skill the user can teach"
    )
    user_set.add_argument(
        "--learn", action="append", default=None, help="Skill the user wants to learn"
    )
    user_show = user_sub.add_parser("show", help="Show a profile")
    user_show.add_argument("user_id")
    user_import = user_sub.add_parser(
        "import", help="Create or update profiles from a YAML or JSON file"
    )
    user_import.add_argument("path", type=Path)

    # Matching
    matches_parser = subparsers.add_parser(
        "matches", help="Find users who can teach what a user wants to learn"
    )
    matches_parser.add_argument("user_id")
    matches_parser.add_argument(
        "--skill", default=None, help="Only show matches for this interest"
    )

    # Exchanges
    exchange_parser = subparsers.add_parser("exchange", help="Manage exchanges")
    exchange_sub = exchange_parser.add_subparsers(dest="exchange_cmd")

    create = exchange_sub.add_parser("create", help="Request an exchange")
    create.add_argument("--teacher", required=True)
    create.add_argument("--student", required=True)
    create.add_argument("--skill", required=True)
    create.add_argument("--hours", type=_positive_int, default=1)

    schedule = exchange_sub.add_parser("schedule", help="Schedule a pending exchange")
    schedule.add_argument("exchange_id")
    schedule.add_argument("--at", default=None, help="ISO-8601 timestamp")
    schedule.add_argument("--date", default=None, help="Date as YYYY-MM-DD")
    schedule.add_argument("--time", default=None, help="Time as HH:MM")
    schedule.add_argument("--as", dest="actor", default=None, help="Acting user id")

    for name, help_text in (
        ("complete", "Complete a scheduled exchange and transfer credits"),
        ("cancel", "Cancel a pending or scheduled exchange"),
    ):
        sub = exchange_sub.add_parser(name, help=help_text)
        sub.add_argument("exchange_id")
        sub.add_argument("--as", dest="actor", default=None, help="Acting user id")

    show = exchange_sub.add_parser("show", help="Show an exchange with both parties")
    show.add_argument("exchange_id")

    for name, help_text in (
        ("list", "List a user's exchanges, newest first"),
        ("upcoming", "List a user's upcoming sessions"),
    ):
        sub = exchange_sub.add_parser(name, help=help_text)
        sub.add_argument("user_id")

    progress_parser = subparsers.add_parser(
        "progress", help="Show or record learning progress"
    )
    progress_sub = progress_parser.add_subparsers(dest="progress_cmd")
    progress_show = progress_sub.add_parser("show", help="Show a user's progress")
    progress_show.add_argument("user_id")
    progress_skill = progress_sub.add_parser(
        "skill", help="Record progress on one skill"
    )
    progress_skill.add_argument("user_id")
    progress_skill.add_argument("skill")
    progress_skill.add_argument("--level", default="Beginner")
    progress_skill.add_argument(
        "--percent", type=int, default=0, help="Percent complete (0-100)"
    )
    progress_skill.add_argument("--hours", type=int, default=0, help="Hours learned")
    progress_skill.add_argument(
        "--sessions", type=int, default=0, help="Sessions completed"
    )
    progress_achieve = progress_sub.add_parser("achieve", help="Award an achievement")
    progress_achieve.add_argument("user_id")
    progress_achieve.add_argument("--title", required=True)
    progress_achieve.add_argument("--description", default="")
    progress_achieve.add_argument("--icon", default="")

    skills_parser = subparsers.add_parser("skills", help="Browse the skill catalog")
    skills_parser.add_argument("--search", default=None, help="Keyword to search for")
    skills_parser.add_argument("--category", default=None, help="Category filter")

    return parser


async def _run(parsed: argparse.Namespace, settings: Settings) -> int:
    from skillswap.directory.catalog import SkillCatalogService, seed_catalog
    from skillswap.directory.profiles import import_profiles
    from skillswap.directory.repository import DirectoryRepository
    from skillswap.exchange.service import ExchangeService
    from skillswap.matching.service import SkillMatcher, filter_matches

    repo = DirectoryRepository(
        parsed.db or settings.database_path,
        read_retries=settings.directory_read_retries,
        initial_time_balance=settings.initial_time_balance,
    )
    await repo.initialize()

    try:
        exchanges = ExchangeService(
            repo, max_exchange_hours=settings.max_exchange_hours
        )

        if parsed.command == "init":
            print(f"Initialized {repo.db_path}")
            return 0

        if parsed.command == "seed":
            added = await seed_catalog(repo)
            print(f"Added {added} skills")
            return 0

        if parsed.command == "user":
            if parsed.user_cmd == "set":
                fields = {
                    key: value
                    for key, value in (
                        ("name", parsed.name),
                        ("bio", parsed.bio),
                        ("location", parsed.location),
                        ("teaching_skills", parsed.teach),
                        ("learning_interests", parsed.learn),
                    )
                    if value is not None
                }
                profile = await repo.patch_user(parsed.user_id, fields)
                _print_json(profile.to_dict())
                return 0
            if parsed.user_cmd == "show":
                _print_json((await repo.get_user(parsed.user_id)).to_dict())
                return 0
            if parsed.user_cmd == "import":
                imported = await import_profiles(repo, parsed.path)
                print(f"Imported {len(imported)} profiles")
                return 0
            print("Unknown user command", file=sys.stderr)
            return 1

        if parsed.command == "matches":
            matcher = SkillMatcher(repo)
            matches = filter_matches(
                await matcher.find_matches(parsed.user_id), parsed.skill
            )
            for match in matches:
                print(
                    f"{match.user_id} {match.name or '-'} "
                    f"teaches {match.matching_skill} (rating {match.rating:.1f})"
                )
            if not matches:
                print("No matches")
            return 0

        if parsed.command == "exchange":
            cmd = parsed.exchange_cmd

            if cmd == "create":
                exchange_id = await exchanges.create_exchange(
                    parsed.teacher, parsed.student, parsed.skill, parsed.hours
                )
                print(exchange_id)
                return 0

            if cmd == "schedule":
                if parsed.at:
                    exchange = await exchanges.schedule_exchange(
                        parsed.exchange_id, parsed.at, actor_id=parsed.actor
                    )
                elif parsed.date and parsed.time:
                    exchange = await exchanges.schedule_exchange_at(
                        parsed.exchange_id,
                        parsed.date,
                        parsed.time,
                        actor_id=parsed.actor,
                    )
                else:
                    print("Provide --at or both --date and --time", file=sys.stderr)
                    return 1
                print(f"scheduled {exchange.scheduled_for.isoformat()}")
                return 0

            if cmd == "complete":
                exchange = await exchanges.complete_exchange(
                    parsed.exchange_id, actor_id=parsed.actor
                )
                print(f"completed, {exchange.credits} credits transferred")
                return 0

            if cmd == "cancel":
                await exchanges.cancel_exchange(
                    parsed.exchange_id, actor_id=parsed.actor
                )
                print("cancelled")
                return 0

            if cmd == "show":
                details = await exchanges.get_session_details(parsed.exchange_id)
                _print_json(details.to_dict())
                return 0

            if cmd in {"list", "upcoming"}:
                if cmd == "list":
                    records = await exchanges.get_user_exchanges(parsed.user_id)
                else:
                    records = await exchanges.get_upcoming_sessions(parsed.user_id)
                for rec in records:
                    when = rec.scheduled_for or rec.created_at
                    print(
                        f"{when.isoformat()} {rec.status.value} {rec.exchange_id} "
                        f"{rec.skill} {rec.duration}h "
                        f"({rec.role_of(parsed.user_id)})"
                    )
                return 0

            print("Unknown exchange command", file=sys.stderr)
            return 1

        if parsed.command == "progress":
            if parsed.progress_cmd == "show":
                summary = await exchanges.get_user_progress(parsed.user_id)
                _print_json(summary.to_dict())
                return 0
            if parsed.progress_cmd == "skill":
                entry = await exchanges.update_skill_progress(
                    parsed.user_id,
                    parsed.skill,
                    {
                        "level": parsed.level,
                        "progress": parsed.percent,
                        "hours_learned": parsed.hours,
                        "sessions_completed": parsed.sessions,
                    },
                )
                print(f"{parsed.skill}: {entry.level}, {entry.progress}%")
                return 0
            if parsed.progress_cmd == "achieve":
                added = await exchanges.add_achievement(
                    parsed.user_id,
                    {
                        "title": parsed.title,
                        "description": parsed.description,
                        "icon": parsed.icon,
                    },
                )
                print("awarded" if added else "already awarded")
                return 0
            print("Unknown progress command", file=sys.stderr)
            return 1

        if parsed.command == "skills":
            catalog = SkillCatalogService(repo)
            if parsed.search:
                skills = await catalog.search_skills(parsed.search)
            elif parsed.category:
                skills = await catalog.get_skills_by_category(parsed.category)
            else:
                skills = await catalog.get_all_skills()
            for skill in skills:
                print(f"{skill.category}: {skill.name} - {skill.description}")
            return 0

        print("Unknown command", file=sys.stderr)
        return 1
    finally:
        await repo.close()


def main(args: list[str] | None = None) -> int:
    """Main entry point for the application.

    Args:
        args: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    try:
        settings = Settings()
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    log_level = parsed.log_level or settings.log_level
    logger = configure_logging(level=log_level)

    if parsed.command is None:
        parser.print_help()
        return 0

    logger.debug(f"SkillSwap v{__version__} running '{parsed.command}'")

    try:
        return asyncio.run(_run(parsed, settings))
    except SkillSwapError as e:
        logger.debug(f"{type(e).__name__}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
