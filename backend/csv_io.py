import csv
import io
from typing import Dict, Iterable, List, Optional, Sequence

from openpyxl import Workbook

EVENT_ALIASES = {
    "name": ("Event Name", "Event", "Name"),
    "event_time": ("Start Time", "Start", "Time", "Event Time"),
    "location": ("Location", "Venue"),
    "description": ("Description", "Desc"),
    "revised_time": ("End Time", "Revised Time"),
    "category": ("Category",),
    "event_type": ("Event Type", "Type"),
}

PARTICIPANT_ALIASES = {
    "name": ("Participant Name", "Name", "Participant"),
    "event": ("Event Name", "Event", "Competition"),
    "branch": ("Branch", "Branch Name", "IMA Branch", "Zone"),
    "team_name": ("Team Name", "Team"),
    "mobile": ("Contact Number", "Mobile", "Phone"),
    "participant_type": ("Participant Type", "Event Type", "Type"),
}

PARTICIPANT_EXPORT_HEADERS = ["Team Name", "Branch Name", "Event Type", "Participant Name", "Event Name", "Mobile"]
EVENT_EXPORT_HEADERS = ["Event Name", "Location", "Start Time", "End Time", "Description"]
ATTENDANCE_EXPORT_HEADERS = ["Participant Name", "Team Name", "Branch", "Status", "Check-in Time", "Marked By"]

CSV_MEDIA_TYPE = "text/csv"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def normalize_header(value) -> str:
    text = str(value or "").strip().lower()
    for ch in ('"', "'", " ", "_", "-"):
        text = text.replace(ch, "")
    return text


def normalize_name(value) -> str:
    return str(value or "").strip().lower()


def read_csv_rows(text: str) -> List[Dict[str, str]]:
    """Parse CSV text into dicts keyed by normalized header.

    A leading BOM is dropped and fully blank lines are skipped. Each dict also
    carries the 1-based source line under "__row__" for warnings.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.reader(io.StringIO(text))
    headers: Optional[List[str]] = None
    rows: List[Dict[str, str]] = []
    for line_no, values in enumerate(reader, start=1):
        if not any(str(value).strip() for value in values):
            continue
        if headers is None:
            headers = [normalize_header(value) for value in values]
            continue
        row = {"__row__": line_no}
        for index, header in enumerate(headers):
            if not header:
                continue
            row[header] = values[index].strip() if index < len(values) else ""
        rows.append(row)
    return rows


def pick(row: Dict[str, str], aliases: Iterable[str], default: str = "") -> str:
    for alias in aliases:
        value = row.get(normalize_header(alias))
        if value is not None and str(value).strip():
            return str(value).strip()
    return default


def has_column(rows: List[Dict[str, str]], aliases: Iterable[str]) -> bool:
    keys = {normalize_header(alias) for alias in aliases}
    return any(key in row for row in rows for key in keys)


def export_to_csv(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> bytes:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    writer.writerows(rows)
    return output.getvalue().encode("utf-8")


def export_to_xlsx(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.append(list(headers))
    for row in rows:
        ws.append(list(row))
    out = io.BytesIO()
    wb.save(out)
    out.seek(0)
    return out.read()
