"""
File operation utilities.

Saving and loading studio snapshots and execution reports
in JSON and CSV form.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Iterable, Optional

import pandas as pd

from ..models.studio import Lesson


logger = logging.getLogger(__name__)


LESSON_COLUMNS = [
    "id", "student_id", "date", "duration_minutes",
    "amount_cents", "completed", "time_of_day", "note",
]


def save_json(data: Dict[str, Any], filepath: Path) -> bool:
    """
    Save data to JSON file.

    Args:
        data: Dictionary data to save
        filepath: Path to save the JSON file

    Returns:
        True if save successful, False otherwise

    Examples:
        >>> save_json({"status": "success"}, Path("output/report.json"))
        True
    """
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

        logger.debug(f"Saved JSON file: {filepath}")
        return True

    except (OSError, TypeError) as e:
        logger.error(f"Failed to save JSON file {filepath}: {e}", exc_info=True)
        return False


def load_json(filepath: Path) -> Optional[Dict[str, Any]]:
    """
    Load data from JSON file.

    Args:
        filepath: Path to the JSON file

    Returns:
        Loaded data dictionary, or None if load failed
    """
    try:
        if not filepath.exists():
            logger.warning(f"JSON file not found: {filepath}")
            return None

        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)

        logger.debug(f"Loaded JSON file: {filepath}")
        return data

    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in file {filepath}: {e}")
        return None

    except OSError as e:
        logger.error(f"Failed to load JSON file {filepath}: {e}", exc_info=True)
        return None


def lessons_to_frame(lessons: Iterable[Lesson]) -> pd.DataFrame:
    """
    Tabulate lesson rows, sorted by date then student.

    Examples:
        >>> df = lessons_to_frame(store.snapshot().lessons)
        >>> list(df.columns)[:3]
        ['id', 'student_id', 'date']
    """
    df = pd.DataFrame([lesson.to_dict() for lesson in lessons], columns=LESSON_COLUMNS)
    if df.empty:
        return df
    return df.sort_values(["date", "student_id"]).reset_index(drop=True)


def save_csv(df: pd.DataFrame, filepath: Path) -> bool:
    """
    Save DataFrame to CSV file.

    Args:
        df: Pandas DataFrame to save
        filepath: Path to save the CSV file

    Returns:
        True if save successful, False otherwise
    """
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)

        df.to_csv(filepath, index=False, encoding='utf-8')

        logger.debug(f"Saved CSV file: {filepath}")
        return True

    except OSError as e:
        logger.error(f"Failed to save CSV file {filepath}: {e}", exc_info=True)
        return False


def generate_filename(prefix: str, extension: str) -> str:
    """
    Generate timestamped filename.

    Examples:
        >>> generate_filename("voice_report", "json")
        'voice_report_20260217_103045.json'
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}.{extension}"
