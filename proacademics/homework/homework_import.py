"""
Homework CSV import

One CSV row is one question. Rows sharing subject, program and homework name
become one homework assignment.
"""

import csv
import io
import re
from datetime import datetime
from typing import Dict, List, Optional

from bson import ObjectId

from proacademics import config
from proacademics.database import generate_id
from proacademics.errors import CsvImportError

REQUIRED_HEADERS = [
    "Subject", "Program", "Homework Name", "Date Assigned", "Teacher",
    "Date Due", "Est.Time", "XP Awarded", "Question ID", "Topic",
    "Subtopic", "Level", "Question", "Mark Scheme", "Image",
]

DATE_FORMATS = ["%Y-%m-%d", "%d/%m/%Y", "%m/%d/%Y", "%d-%m-%Y"]


def normalize_header(header: str) -> str:
    """'Homework Name' -> 'homework_name', 'Est.Time' -> 'est_time'"""
    return re.sub(r"[\s.]", "_", header.strip().lower())


def find_missing_headers(headers: List[str]) -> List[str]:
    lowered = [h.lower() for h in headers]
    return [
        required for required in REQUIRED_HEADERS
        if not any(required.lower() in h for h in lowered)
    ]


def parse_level(value: Optional[str]) -> str:
    level = (value or "").strip().lower()
    return level if level in ("easy", "medium") else "hard"


def parse_date(value: str) -> datetime:
    value = (value or "").strip()
    if not value:
        raise ValueError("Missing date")

    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"Invalid date '{value}'")


def parse_int(value: Optional[str], default: int) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def read_rows(csv_text: str) -> List[List[str]]:
    """Quote-aware CSV reading, blank lines dropped"""
    reader = csv.reader(io.StringIO(csv_text.lstrip("\ufeff")))
    return [[cell.strip() for cell in row] for row in reader if any(cell.strip() for cell in row)]


def _question_from_row(row: Dict[str, str]) -> dict:
    image = row.get("image", "")
    return {
        "questionId": row.get("question_id") or generate_id("q"),
        "topic": row.get("topic", ""),
        "subtopic": row.get("subtopic", ""),
        "level": parse_level(row.get("level")),
        "question": row.get("question", ""),
        "markScheme": row.get("mark_scheme", ""),
        "image": None if image.strip().lower() in ("", "n") else image,
    }


def parse_homework_csv(csv_text: str, now: Optional[datetime] = None) -> dict:
    """
    Parse a homework CSV into homework documents ready for insert

    Raises CsvImportError when the file as a whole is unusable.
    Returns {homework, validRows, invalidRows}; invalidRows holds "Row N: reason".
    """
    rows = read_rows(csv_text)
    if len(rows) < 2:
        raise CsvImportError("CSV file must contain at least a header row and one data row")

    headers = rows[0]
    missing = find_missing_headers(headers)
    if missing:
        raise CsvImportError(
            f"Missing required columns: {', '.join(missing)}",
            expectedHeaders=REQUIRED_HEADERS,
            foundHeaders=headers,
        )

    keys = [normalize_header(h) for h in headers]
    grouped: Dict[str, dict] = {}
    valid_rows = 0
    invalid_rows: List[str] = []

    for line_no, cells in enumerate(rows[1:], start=2):
        if len(cells) != len(keys):
            invalid_rows.append(f"Row {line_no}: Column count mismatch")
            continue

        row = dict(zip(keys, cells))
        try:
            question = _question_from_row(row)
            key = f"{row.get('subject')}_{row.get('program')}_{row.get('homework_name')}"

            if key not in grouped:
                grouped[key] = {
                    "homeworkName": row.get("homework_name", ""),
                    "subject": row.get("subject", ""),
                    "program": row.get("program", ""),
                    "topic": question["topic"],
                    "subtopic": question["subtopic"],
                    "level": question["level"],
                    "teacher": row.get("teacher", ""),
                    "dateAssigned": parse_date(row.get("date_assigned", "")),
                    "dueDate": parse_date(row.get("date_due", "")),
                    "estimatedTime": parse_int(row.get("est_time"), 30),
                    "xpAwarded": parse_int(row.get("xp_awarded"), config.XP_REWARDS["ASSIGNMENT_COMPLETION"]),
                    "questionSet": [],
                    "status": "draft",
                }

            grouped[key]["questionSet"].append(question)
            valid_rows += 1
        except ValueError as e:
            invalid_rows.append(f"Row {line_no}: {e}")

    now = now or datetime.utcnow()
    homework = []
    for item in grouped.values():
        homework.append({
            "assignmentId": str(ObjectId()),
            **item,
            "totalQuestions": len(item["questionSet"]),
            "completedQuestions": 0,
            "completionStatus": "not_started",
            "xpEarned": 0,
            "createdAt": now,
            "updatedAt": now,
        })

    return {"homework": homework, "validRows": valid_rows, "invalidRows": invalid_rows}
