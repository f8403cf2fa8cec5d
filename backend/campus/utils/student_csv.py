"""CSV conversion for student records.

Export writes one quoted row per student under human-readable headers.
Import accepts either those headers or the API field names and returns
rows keyed by API field name, ready for `StudentCreate` validation.
"""

import csv
import io
from typing import Dict, Iterable, List, Tuple

EXPORT_HEADERS = [
    "ID",
    "Student ID",
    "First Name",
    "Last Name",
    "Email",
    "Phone",
    "Date of Birth",
    "Gender",
    "Address",
    "Blood Group",
    "Nationality",
    "Emergency Contact Name",
    "Emergency Contact Phone",
    "Emergency Contact Relationship",
    "Guardian Name",
    "Guardian Phone",
    "Guardian Email",
    "Guardian Relationship",
    "Medical Conditions",
    "Allergies",
    "Department",
    "Semester",
    "Current Year",
    "Current Semester",
    "Enrollment Date",
    "Status",
]

# header label -> API field name
IMPORT_COLUMNS = {
    "Student ID": "student_code",
    "Enrollment Date": "enrollment_date",
    "User ID": "user_id",
    "Date of Birth": "date_of_birth",
    "Gender": "gender",
    "Address": "address",
    "Phone": "phone",
    "Emergency Contact": "emergency_contact",
    "Blood Group": "blood_group",
    "Nationality": "nationality",
    "Emergency Contact Name": "emergency_contact_name",
    "Emergency Contact Phone": "emergency_contact_phone",
    "Emergency Contact Relationship": "emergency_contact_relationship",
    "Guardian Name": "guardian_name",
    "Guardian Phone": "guardian_phone",
    "Guardian Email": "guardian_email",
    "Guardian Relationship": "guardian_relationship",
    "Medical Conditions": "medical_conditions",
    "Allergies": "allergies",
    "Department ID": "department_id",
    "Semester": "semester",
    "Current Year": "current_year",
    "Current Semester": "current_semester",
}


def _cell(value) -> str:
    if value is None:
        return ""
    return str(getattr(value, "value", value))


def students_to_csv(rows: Iterable[Dict]) -> str:
    """Render student dicts (keyed by export header) as CSV text."""
    sio = io.StringIO()
    writer = csv.writer(sio, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for row in rows:
        writer.writerow([_cell(row.get(h)) for h in EXPORT_HEADERS])
    return sio.getvalue()


def parse_students_csv(b: bytes) -> List[Tuple[int, Dict]]:
    """Parse an uploaded CSV into (row_number, fields) pairs.

    Row numbers count the header as row 1 so they match what a user sees
    in a spreadsheet. Empty cells are dropped.
    """
    text = b.decode("utf-8-sig")
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValueError("CSV file is empty or invalid")
    out = []
    for index, row in enumerate(reader, start=2):
        fields = {}
        for header, value in row.items():
            if header is None or value is None:
                continue
            header = header.strip()
            value = value.strip()
            if not value:
                continue
            key = IMPORT_COLUMNS.get(header, header if header in IMPORT_COLUMNS.values() else None)
            if key:
                fields[key] = value
        if fields:
            out.append((index, fields))
    if not out:
        raise ValueError("CSV file is empty or invalid")
    return out
