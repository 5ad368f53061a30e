"""
Main Entry Point for the Nursery Roster

Command-line front end over the generator and the constraint checker, with
logging setup and a global exception hook.
"""

import sys
import argparse
import logging
import random
from pathlib import Path
from datetime import date, datetime

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from nursery_roster.data_manager import DataManager, DataManagerError
from nursery_roster.constraint_checker import (
    create_constraint_context, evaluate_candidates, find_shortages,
    find_swap_suggestions, get_impact_preview
)
from nursery_roster.reporting import ReportGenerator
from nursery_roster.scheduler_logic import ShiftGenerator


def setup_logging(log_dir: str = "logs", level: int = logging.INFO):
    """Setup application logging"""
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    log_file = log_path / f"nursery_roster_{datetime.now().strftime('%Y%m%d')}.log"

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ],
        force=True
    )

    return logging.getLogger(__name__)


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler"""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = logging.getLogger(__name__)
    logger.error(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback)
    )


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="nursery-roster", description="Monthly shift roster for a nursery")
    ap.add_argument("--data", default="data/roster_data.json", help="Roster data file")
    ap.add_argument("--log-dir", default="logs")
    ap.add_argument("--verbose", action="store_true", help="Log phase-level detail")
    sub = ap.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate and store a month schedule")
    gen.add_argument("--year", type=int, required=True)
    gen.add_argument("--month", type=int, required=True)
    gen.add_argument("--seed", type=int, help="Seed for fairness tie-breaks")
    gen.add_argument("--dry-run", action="store_true", help="Do not write the result back")

    check = sub.add_parser("check", help="Preview the impact of a single cell edit")
    check.add_argument("--date", type=_iso_date, required=True)
    check.add_argument("--staff", type=int, required=True)
    check.add_argument("--shift", required=True)

    candidates = sub.add_parser("candidates", help="Rank staff for a shift")
    candidates.add_argument("--date", type=_iso_date, required=True)
    candidates.add_argument("--shift", required=True)

    shortages = sub.add_parser("shortages", help="List extreme band shortages for a day")
    shortages.add_argument("--date", type=_iso_date, required=True)

    swaps = sub.add_parser("swaps", help="Suggest swaps that relieve a shortage")
    swaps.add_argument("--date", type=_iso_date, required=True)
    swaps.add_argument("--shift", required=True)

    report = sub.add_parser("report", help="Print the month summary")
    report.add_argument("--year", type=int, required=True)
    report.add_argument("--month", type=int, required=True)

    return ap


def _context_for(data_manager: DataManager, day: date):
    return create_constraint_context(
        data_manager.get_schedule(day.year, day.month),
        data_manager.get_staff(),
        data_manager.get_holidays(),
        data_manager.get_settings(),
        day.year,
        day.month
    )


def cmd_generate(data_manager: DataManager, args) -> int:
    logger = logging.getLogger(__name__)
    rng = random.Random(args.seed) if args.seed is not None else None
    generator = ShiftGenerator(
        data_manager.get_staff(),
        data_manager.get_holidays(),
        args.year,
        args.month,
        data_manager.get_settings(),
        data_manager.get_schedule(args.year, args.month),
        data_manager.get_time_range_schedule(args.year, args.month),
        rng=rng
    )
    result = generator.run()
    print(result.message)
    for date_str, day_shortages in result.shortages.items():
        details = ", ".join(f"{s.pattern} {s.current}/{s.required}" for s in day_shortages)
        print(f"  {date_str}: {details}")

    if not args.dry_run:
        data_manager.save_schedule(args.year, args.month, result.schedule)
        data_manager.set_setting("lastUsedMonth", f"{args.year}-{args.month:02d}")
        data_manager.save_data()
        logger.info(f"Schedule for {args.year}-{args.month:02d} saved")
    return 0


def cmd_check(data_manager: DataManager, args) -> int:
    ctx = _context_for(data_manager, args.date)
    preview = get_impact_preview(ctx, args.date.day, args.staff, args.shift)
    print(preview.summary)
    for violation in preview.violations:
        print(f"  [{violation.type}] {violation.code}: {violation.message}")
    return 0


def cmd_candidates(data_manager: DataManager, args) -> int:
    ctx = _context_for(data_manager, args.date)
    for candidate in evaluate_candidates(ctx, args.date.day, args.shift):
        status = "OK" if candidate.is_assignable else "NG"
        codes = ", ".join(v.code for v in candidate.violations)
        print(f"{status} {candidate.staff_name} ({candidate.current_shift or '-'}) {codes}".rstrip())
    return 0


def cmd_shortages(data_manager: DataManager, args) -> int:
    ctx = _context_for(data_manager, args.date)
    shortages = find_shortages(ctx, args.date.day)
    if not shortages:
        print("No shortages")
    for shortage in shortages:
        print(f"{shortage.pattern}: {shortage.current}/{shortage.required}")
    return 0


def cmd_swaps(data_manager: DataManager, args) -> int:
    ctx = _context_for(data_manager, args.date)
    suggestions = find_swap_suggestions(ctx, args.date.day, args.shift)
    if not suggestions:
        print("No swap found")
    for suggestion in suggestions:
        print(f"{suggestion.description}: {suggestion.benefit}")
    return 0


def cmd_report(data_manager: DataManager, args) -> int:
    generator = ReportGenerator(data_manager.get_staff(), data_manager.get_holidays(), data_manager.get_settings())
    schedule = data_manager.get_schedule(args.year, args.month)
    time_ranges = data_manager.get_time_range_schedule(args.year, args.month)
    print(generator.create_dashboard_summary(schedule, time_ranges, args.year, args.month))
    print()
    print(generator.create_staff_summary_dataframe(schedule, args.year, args.month).to_string(index=False))
    return 0


COMMANDS = {
    "generate": cmd_generate,
    "check": cmd_check,
    "candidates": cmd_candidates,
    "shortages": cmd_shortages,
    "swaps": cmd_swaps,
    "report": cmd_report,
}


def run(argv=None) -> int:
    """Parse arguments and dispatch, returning the exit status"""
    args = build_parser().parse_args(argv)
    logger = setup_logging(args.log_dir, logging.DEBUG if args.verbose else logging.INFO)
    logger.info(f"Running '{args.command}' against {args.data}")

    try:
        data_manager = DataManager(args.data)
        return COMMANDS[args.command](data_manager, args)
    except DataManagerError as e:
        logger.error(f"Data error: {e}")
        return 1


def main():
    """Main entry point"""
    # Setup global exception handling
    sys.excepthook = handle_exception
    sys.exit(run())


if __name__ == "__main__":
    main()
