import pandas as pd
import json
import os
import zipfile

from ..exceptions import ImportFileError

REQUIRED_COLUMNS = ["questionText", "questionType"]

# column header -> row key; "(json)" / "(csv)" columns hold encoded lists
OPTIONAL_COLUMNS = {
    "options(json)": "options",
    "correctAnswer": "correctAnswer",
    "acceptedAnswers(csv)": "acceptedAnswers",
    "sampleAnswer": "sampleAnswer",
    "points": "points",
    "difficulty": "difficulty",
    "tags(csv)": "tags",
    "explanation": "explanation",
}

SPREADSHEET_EXTENSIONS = {".xlsx", ".xlsm", ".xls", ".xlsb", ".ods"}
FILE_FORMATS = {".json": "json", ".csv": "csv"}
FILE_FORMATS.update({ext: "excel" for ext in SPREADSHEET_EXTENSIONS})


def format_for_filename(filename: str) -> str:
    extension = os.path.splitext(filename or "")[1].lower()
    if extension not in FILE_FORMATS:
        raise ImportFileError(f"Invalid file extension. Only {sorted(FILE_FORMATS)} are allowed.")
    return FILE_FORMATS[extension]


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return bool(pd.isna(value))


def _rows_from_frame(df: pd.DataFrame) -> list:
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        # Raise KeyError so upstream router can return a HTTP 400 with a helpful message
        raise KeyError(missing[0])

    rows = []
    for position, (_, record) in enumerate(df.iterrows(), start=1):
        row = {
            "questionText": "" if _is_blank(record["questionText"]) else str(record["questionText"]),
            "questionType": None if _is_blank(record["questionType"]) else str(record["questionType"]),
        }
        for column, key in OPTIONAL_COLUMNS.items():
            if column not in df.columns or _is_blank(record[column]):
                continue
            value = record[column]
            if column.endswith("(json)"):
                try:
                    value = json.loads(value)
                except (TypeError, ValueError):
                    raise ImportFileError(f"Row {position}: column {column} is not valid JSON")
            elif column.endswith("(csv)"):
                value = [part.strip() for part in str(value).split(",") if part.strip()]
            elif hasattr(value, "item"):
                # numpy scalars from spreadsheet cells
                value = value.item()
            row[key] = value
        rows.append(row)

    return rows


def parse_csv(file) -> list:
    try:
        df = pd.read_csv(file, dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ImportFileError(f"Failed to parse CSV file: {e}")
    return _rows_from_frame(df)


def parse_excel(file) -> list:
    try:
        df = pd.read_excel(file)
    except (ValueError, zipfile.BadZipFile) as e:
        raise ImportFileError(f"Failed to parse spreadsheet: {e}")
    return _rows_from_frame(df)


def parse_json(file) -> list:
    content = file.read() if hasattr(file, "read") else file
    try:
        data = json.loads(content)
    except (TypeError, ValueError) as e:
        raise ImportFileError(f"Failed to parse JSON file: {e}")
    if isinstance(data, dict):
        # {"questions": [...]} request bodies and single objects are both accepted
        data = data.get("questions", [data])
    if not isinstance(data, list):
        raise ImportFileError("JSON import must be a list of questions")
    return data


def parse_import_file(file, file_format: str) -> list:
    if file_format == "json":
        return parse_json(file)
    if file_format == "csv":
        return parse_csv(file)
    if file_format == "excel":
        return parse_excel(file)
    raise ImportFileError(f"Unsupported import format: {file_format}")


def import_template() -> list:
    """Sample rows, one per common legacy question type."""
    return [
        {
            "questionText": "Sample question text",
            "questionType": "multiple_choice",
            "options": [
                {"text": "Option A", "isCorrect": True},
                {"text": "Option B", "isCorrect": False},
            ],
            "points": 1,
            "difficulty": "medium",
            "tags": ["sample"],
            "explanation": "Optional explanation",
        },
        {
            "questionText": "Sample true/false statement",
            "questionType": "true_false",
            "correctAnswer": "True",
            "points": 1,
            "difficulty": "easy",
            "tags": ["sample"],
        },
        {
            "questionText": "Sample short answer question",
            "questionType": "short_answer",
            "correctAnswer": "Sample answer",
            "points": 1,
            "difficulty": "medium",
            "tags": ["sample"],
        },
    ]
