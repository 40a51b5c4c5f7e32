#!/usr/bin/env python3
"""
Studio Voice Command Runner.

This script runs one spoken or typed command against a studio snapshot
and saves the resulting lesson rows.

Usage:
    python run_voice.py --snapshot studio.json --transcript TEXT [--date YYYY-MM-DD] [--yes] [--choose N]

Examples:
    # Mark attendance for the selected date
    python run_voice.py --snapshot studio.json --transcript "Sarah and Tiffany came today" --date 2026-02-17

    # Move a lesson, answering any confirmation automatically
    python run_voice.py --snapshot studio.json --transcript "Move Leo from Feb 18 to Feb 20 at 5pm" --yes

    # Pick the first option when a name is ambiguous
    python run_voice.py --snapshot studio.json --transcript "Leo came today" --choose 1

    # Verbose logging
    python run_voice.py --snapshot studio.json --transcript "help" --log-level DEBUG
"""

import sys
import argparse
import logging
from datetime import date
from pathlib import Path
from typing import Optional

from studio_voice.models.outcome import CommandResult, CommandStatus
from studio_voice.models.studio import StudioSnapshot
from studio_voice.persistence.memory_store import InMemoryLessonStore
from studio_voice.resilience.circuit_breaker import CircuitBreaker
from studio_voice.utils.config import config
from studio_voice.utils.di_container import DIContainer, configure_voice_services
from studio_voice.utils.file_utils import (
    generate_filename,
    lessons_to_frame,
    load_json,
    save_csv,
    save_json,
)
from studio_voice.utils.logger import setup_logger
from studio_voice.voice.controller import Selection, VoiceCommandController


MAX_FOLLOW_UPS = 5


def parse_arguments():
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Run a studio voice command against a snapshot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        "--snapshot",
        required=True,
        help="JSON file with \"students\" and \"lessons\" lists"
    )

    parser.add_argument(
        "--transcript",
        required=True,
        help="Command text, e.g. \"Chloe and Leo came today\""
    )

    parser.add_argument(
        "--date",
        help="Selected date in YYYY-MM-DD format (default: today)"
    )

    parser.add_argument(
        "--reference-date",
        help="Date that \"today\" refers to (default: the selected date)"
    )

    parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm low-confidence commands without prompting"
    )

    parser.add_argument(
        "--choose",
        type=int,
        help="1-based option to pick when a clarification is needed"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)"
    )

    return parser.parse_args()


def parse_date_key(value: Optional[str]) -> str:
    """
    Validate a YYYY-MM-DD date string.

    Args:
        value: Date string, or None for today

    Returns:
        ISO date key

    Raises:
        ValueError: If format is invalid
    """
    if not value:
        return date.today().isoformat()
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError as e:
        raise ValueError(f"Invalid date '{value}': {e}")


def display_summary(result: CommandResult):
    """
    Display the command outcome.

    Args:
        result: Final controller result
    """
    print("\n" + "=" * 60)
    print("VOICE COMMAND RESULT")
    print("=" * 60)
    print(f"Status:   {result.status.value}")
    print(f"Message:  {result.message}")
    print("=" * 60)

    if result.report and result.report.items:
        print("\nLessons:")
        print("-" * 60)
        for idx, item in enumerate(result.report.items, 1):
            reason = f" | {item.error_message}" if item.error_message else ""
            print(
                f"{idx:2d}. {item.student_name:20s} | {item.status.value:8s} | "
                f"{item.lesson_id or '-'}{reason}"
            )
        print("-" * 60)


def confirm_command(message: str) -> bool:
    """
    Ask user to confirm a low-confidence command.

    Returns:
        True if user confirms
    """
    print("\n" + "=" * 60)
    response = input(f"{message} (y/n): ").strip().lower()
    return response in ['y', 'yes']


def choose_option(message: str, options: list) -> str:
    """
    Ask user to pick one of the offered options.

    Returns:
        The raw reply (a number or a label)
    """
    print("\n" + "=" * 60)
    print(message)
    for idx, option in enumerate(options, 1):
        print(f"  {idx}. {option}")
    return input("Choose an option: ").strip()


def follow_up(result: CommandResult, args) -> Optional[Selection]:
    """
    Selection answering a pending result, from flags or stdin.

    Returns:
        Selection, or None when nothing can answer it
    """
    if result.status == CommandStatus.NEEDS_CONFIRMATION:
        if args.yes:
            return Selection(confirm=True)
        return Selection(confirm=confirm_command(result.message))

    if args.choose is not None:
        return Selection(option_index=args.choose - 1)
    if not sys.stdin.isatty():
        return None
    return Selection.from_text(choose_option(result.message, result.options))


def save_execution_report(
    transcript: str,
    selected_date_key: str,
    result: CommandResult,
    store: InMemoryLessonStore,
    breaker: Optional[CircuitBreaker] = None
):
    """
    Save execution report.

    Args:
        transcript: Command text as given
        selected_date_key: Selected date
        result: Final controller result
        store: Store after execution
        breaker: Circuit breaker guarding store writes
    """
    output_dir = config.output_dir / "voice_reports"
    output_dir.mkdir(parents=True, exist_ok=True)

    # Create report data
    report = {
        "transcript": transcript,
        "selected_date": selected_date_key,
        "status": result.status.value,
        "message": result.message,
        "state": result.state.value if result.state else None,
        "kind": result.kind.value if result.kind else None,
        "execution": result.report.to_dict() if result.report else None,
        "store_circuit": breaker.get_state_info() if breaker else None,
    }

    # Save JSON report
    json_path = output_dir / generate_filename("voice_report", "json")
    save_json(report, json_path)
    print(f"\nReport saved to: {json_path}")

    # Save CSV of the lesson rows as they now stand
    if result.report:
        csv_path = output_dir / generate_filename("voice_lessons", "csv")
        save_csv(lessons_to_frame(store.lessons()), csv_path)
        print(f"Lesson rows saved to: {csv_path}")


def main():
    """Main execution function."""
    # Parse arguments
    args = parse_arguments()

    # Setup logging
    config.create_output_directories()
    logger = setup_logger(
        "studio_voice",
        level=getattr(logging, args.log_level),
        log_file=str(config.output_dir / "voice_logs" / "voice.log")
    )

    try:
        selected = parse_date_key(args.date)
        reference = parse_date_key(args.reference_date) if args.reference_date else selected
        logger.info(f"Selected date: {selected}, reference date: {reference}")

        # Validate configuration
        logger.info("Validating configuration")
        config.validate()

        # Load snapshot
        data = load_json(Path(args.snapshot))
        if data is None:
            print(f"ERROR: Could not read snapshot {args.snapshot}")
            return 1
        store = InMemoryLessonStore.from_snapshot(StudioSnapshot.from_dict(data))
        logger.info(f"Loaded {len(store.find_students())} students, {len(store.lessons())} lessons")

        container = DIContainer()
        configure_voice_services(container, store)
        controller = container.resolve(VoiceCommandController)

        result = controller.handle(args.transcript, store.snapshot(), selected, reference)

        for _ in range(MAX_FOLLOW_UPS):
            if not result.pending_command:
                break
            selection = follow_up(result, args)
            if selection is None:
                print(f"\n{result.message}")
                for idx, option in enumerate(result.options, 1):
                    print(f"  {idx}. {option}")
                controller.close_session()
                return 1
            result = controller.resume(result.pending_command, selection, store.snapshot())
        else:
            controller.close_session()

        display_summary(result)
        breaker = container.resolve(CircuitBreaker)
        if not breaker.is_closed:
            logger.warning(f"Store circuit breaker is {breaker.state.value}")
        save_execution_report(args.transcript, selected, result, store, breaker)

        return 0 if result.status == CommandStatus.SUCCESS else 1

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        logger.info("Interrupted by user")
        return 130

    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        print(f"\nERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
