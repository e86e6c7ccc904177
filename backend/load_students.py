"""
Bulk Loader Script - registers students from a JSON file via the API.

Reads a JSON array of {name, phone, admission_number} objects and posts
each one to POST /api/register, so every record goes through the same
validation and duplicate checks as the public form.

Usage:
    python load_students.py                                   # Defaults
    python load_students.py http://localhost:8000             # Custom API URL
    python load_students.py http://localhost:8000 roster.json # Custom file
"""

import json
import sys
import os

import httpx

STATUS_LABELS = {
    200: "REGISTERED",
    400: "INVALID",
    409: "DUPLICATE",
}


def register_all(client: httpx.Client, api_url: str, records: list) -> dict:
    """
    Post each record to the registration endpoint.

    Returns a summary dict with counts per outcome and one detail entry
    per record.
    """
    summary = {"registered": 0, "duplicates": 0, "invalid": 0, "errors": 0, "details": []}
    register_url = f"{api_url.rstrip('/')}/api/register"

    for record in records:
        payload = {
            "name": record.get("name"),
            "phone": record.get("phone"),
            "admission_number": record.get("admission_number"),
        }
        try:
            resp = client.post(register_url, json=payload)
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            summary["errors"] += 1
            summary["details"].append({"admission_number": payload["admission_number"],
                                       "status": "ERROR", "reason": str(e)})
            continue

        status = STATUS_LABELS.get(resp.status_code, "ERROR")
        if status == "REGISTERED":
            summary["registered"] += 1
            summary["details"].append({"admission_number": payload["admission_number"],
                                       "status": status, "id": body.get("id")})
        else:
            key = {"DUPLICATE": "duplicates", "INVALID": "invalid"}.get(status, "errors")
            summary[key] += 1
            summary["details"].append({"admission_number": payload["admission_number"],
                                       "status": status, "reason": body.get("error")})
    return summary


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    api_url = argv[0] if len(argv) > 0 else os.getenv("API_URL", "http://localhost:8000")
    data_file = argv[1] if len(argv) > 1 else "students_seed.json"

    if not os.path.exists(data_file):
        print(f"Error: Could not find {data_file}")
        return 1

    print(f"Loading students from: {data_file}")
    with open(data_file, 'r', encoding='utf-8') as f:
        records = json.load(f)

    print(f"Found {len(records)} records")
    print(f"Sending to: {api_url}/api/register")
    print()

    with httpx.Client(timeout=30.0) as client:
        summary = register_all(client, api_url, records)

    print("=" * 60)
    print("REGISTRATION SUMMARY")
    print("=" * 60)
    print(f"  Registered:  {summary['registered']}")
    print(f"  Duplicates:  {summary['duplicates']}")
    print(f"  Invalid:     {summary['invalid']}")
    print(f"  Errors:      {summary['errors']}")
    print("=" * 60)
    print()

    for d in summary["details"]:
        status = d["status"]
        icon = '✅' if status == 'REGISTERED' else ('🔁' if status == 'DUPLICATE' else '❌')
        extra = f" (id: {d.get('id')})" if status == 'REGISTERED' else f" ({d.get('reason')})"
        print(f"  {icon} {d['admission_number']}: {status}{extra}")

    return 1 if summary["errors"] else 0


if __name__ == "__main__":
    sys.exit(main())
