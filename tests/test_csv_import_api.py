import json
import os

import pytest
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.models.import_report import ImportReport, ImportErrorType
from app.models.lead import Lead
from tests.helpers import create_test_lead_in_db, count_leads_in_db, csv_upload

HEADER = "firstName,lastName,email,jobTitle,countryCode,companyName\n"


def import_csv(client, content, **kwargs):
    return client.post("/leads/import-csv", files=csv_upload(content, **kwargs))


@pytest.fixture
def failing_insert():
    """Make inserting a lead named ``Broken`` fail at the database layer."""
    def fail_for_broken(mapper, connection, target):
        if target.first_name == "Broken":
            raise SQLAlchemyError("simulated insert failure")

    event.listen(Lead, "before_insert", fail_for_broken)
    yield
    event.remove(Lead, "before_insert", fail_for_broken)


@pytest.fixture
def failing_report():
    """Make every import report insert fail."""
    def fail(mapper, connection, target):
        raise SQLAlchemyError("simulated report failure")

    event.listen(ImportReport, "before_insert", fail)
    yield
    event.remove(ImportReport, "before_insert", fail)


def test_import_valid_rows(client, db_session, db_helpers):
    content = HEADER + (
        "Jane,Doe,jane@example.com,CTO,US,Acme\n"
        " John , Smith ,john@example.com,,,\n"
    )
    response = import_csv(client, content)

    assert response.status_code == 200
    body = response.json()
    report = db_helpers.latest_report()
    assert body == {
        "success": True,
        "imported": 2,
        "errors": 0,
        "message": "Import completed. 2 leads imported, 0 errors.",
        "importReportId": report.id,
    }
    assert db_helpers.lead_names() == [("Jane", "Doe"), ("John", "Smith")]
    john = db_session.query(Lead).filter(Lead.first_name == "John").one()
    assert john.job_title is None and john.company_name is None
    assert report.filename == "leads.csv"
    assert report.file_size == len(content.encode("utf-8"))
    assert report.total_rows == 2
    assert report.success is True
    assert sorted(lead.id for lead in report.leads) == sorted(l.id for l in db_session.query(Lead).all())

def test_row_errors_are_reported_with_row_numbers(client, db_session, db_helpers):
    content = HEADER + (
        ",Doe,nobody@example.com,,,\n"          # row 2: missing firstName
        "Jane,Doe,,,,\n"                         # row 3: missing email
        "Jane,Doe,not-an-email,,,\n"             # row 4: invalid email
        "Jane,Doe,jane@example.com,,,\n"         # row 5: imported
        "JANE,doe,jane2@example.com,,,\n"        # row 6: duplicate of row 5
    )
    response = import_csv(client, content)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["imported"] == 1
    assert body["errors"] == 4
    assert body["message"] == "Import completed. 1 leads imported, 4 errors."
    assert body["errorDetails"] == [
        "Row 2: Missing required field: firstName",
        "Row 3: Missing required field: email",
        "Row 4: Invalid email format: not-an-email",
        "Row 6: Duplicate lead: JANE doe already exists",
    ]

    report = db_helpers.latest_report()
    assert report.total_rows == 5
    assert report.imported + report.errors == report.total_rows
    assert [(e.row_number, e.error_type) for e in report.error_entries] == [
        (2, ImportErrorType.MISSING_FIELD),
        (3, ImportErrorType.MISSING_FIELD),
        (4, ImportErrorType.INVALID_EMAIL),
        (6, ImportErrorType.DUPLICATE),
    ]
    assert json.loads(report.error_entries[2].row_data)["email"] == "not-an-email"

def test_existing_lead_is_duplicate_in_any_case(client, db_session):
    create_test_lead_in_db(db_session, {"first_name": "Jane", "last_name": "Doe"})
    response = import_csv(client, "firstName,lastName,email\njane,DOE,jane@example.com\n")
    body = response.json()
    assert body["imported"] == 0
    assert body["errorDetails"] == ["Row 2: Duplicate lead: jane DOE already exists"]
    assert count_leads_in_db(db_session) == 1

def test_all_invalid_rows(client, db_session):
    content = "firstName,lastName,email\n,A,a@b.co\n,B,b@b.co\n,C,c@b.co\n"
    response = import_csv(client, content)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["imported"] == 0
    assert body["errors"] == 3

def test_empty_file_imports_nothing(client, db_session, db_helpers):
    response = import_csv(client, "")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["imported"] == 0 and body["errors"] == 0
    assert "errorDetails" not in body
    assert db_helpers.latest_report().total_rows == 0

def test_database_error_only_affects_its_row(client, db_session, db_helpers, failing_insert):
    content = "firstName,lastName,email\nAnn,Lee,ann@example.com\nBroken,Row,broken@example.com\nBo,Kim,bo@example.com\n"
    response = import_csv(client, content)

    assert response.status_code == 200
    body = response.json()
    assert body["imported"] == 2
    assert body["errors"] == 1
    assert body["errorDetails"] == ["Row 3: Database error: simulated insert failure"]
    assert db_helpers.lead_names() == [("Ann", "Lee"), ("Bo", "Kim")]
    assert db_helpers.latest_report().error_entries[0].error_type == ImportErrorType.DATABASE_ERROR

def test_driver_error_only_affects_its_row(client, db_session, db_helpers):
    def reject_nul(mapper, connection, target):
        if target.first_name == "Broken":
            raise ValueError("A string literal cannot contain NUL (0x00) characters.")

    event.listen(Lead, "before_insert", reject_nul)
    try:
        content = "firstName,lastName,email\nAnn,Lee,ann@example.com\nBroken,Row,broken@example.com\nBo,Kim,bo@example.com\n"
        response = import_csv(client, content)
    finally:
        event.remove(Lead, "before_insert", reject_nul)

    assert response.status_code == 200
    body = response.json()
    assert body["imported"] == 2
    assert body["errors"] == 1
    assert body["errorDetails"] == [
        "Row 3: Database error: A string literal cannot contain NUL (0x00) characters."
    ]
    assert db_helpers.lead_names() == [("Ann", "Lee"), ("Bo", "Kim")]
    assert db_helpers.latest_report().error_entries[0].error_type == ImportErrorType.DATABASE_ERROR

def test_failed_report_write_rolls_back_leads(client, db_session, db_helpers, failing_report):
    response = import_csv(client, "firstName,lastName,email\nAnn,Lee,ann@example.com\n")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "imported": 0,
        "errors": 1,
        "message": "CSV import failed",
        "errorDetails": ["simulated report failure"],
    }
    assert count_leads_in_db(db_session) == 0
    assert db_helpers.get_reports() == []

def test_unparseable_file_records_file_error(client, db_session, db_helpers):
    response = client.post(
        "/leads/import-csv",
        files={"file": ("broken.csv", b"firstName,lastName,email\n\xff\xfe,Doe,x@y.co\n", "text/csv")}
    )

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "CSV import failed"
    assert body["errorDetails"][0].startswith("Failed to parse CSV file")
    report = db_helpers.latest_report()
    assert body["importReportId"] == report.id
    assert (report.filename, report.total_rows, report.imported, report.errors) == ("broken.csv", 0, 0, 1)
    assert report.error_entries[0].error_type == ImportErrorType.FILE_ERROR
    assert count_leads_in_db(db_session) == 0

def test_no_file_uploaded(client, db_session, db_helpers):
    response = client.post("/leads/import-csv", data={"note": "no file"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "No CSV file uploaded"
    assert body["imported"] == 0
    assert body["errors"] == 1
    report = db_helpers.latest_report()
    assert report.message == "No CSV file uploaded"
    assert report.error_entries[0].error_type == ImportErrorType.FILE_ERROR

def test_rejects_non_csv_upload(client, db_session, db_helpers):
    response = import_csv(client, "hello", filename="notes.txt", content_type="text/plain")
    assert response.status_code == 400
    assert response.json()["message"] == "Only CSV files are allowed"
    assert db_helpers.get_reports() == []

def test_accepts_csv_extension_with_generic_type(client, db_session):
    response = import_csv(client, "firstName,lastName,email\nAnn,Lee,ann@example.com\n",
                          filename="LEADS.CSV", content_type="application/octet-stream")
    assert response.status_code == 200
    assert response.json()["imported"] == 1

def test_rejects_oversized_upload(client, db_session, db_helpers, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 16)
    response = import_csv(client, "firstName,lastName,email\nAnn,Lee,ann@example.com\n")
    assert response.status_code == 413
    assert response.json()["success"] is False
    assert count_leads_in_db(db_session) == 0
    assert db_helpers.get_reports() == []
    assert os.listdir(settings.UPLOAD_DIR) == []

def test_upload_is_removed_after_import(client, db_session):
    import_csv(client, "firstName,lastName,email\nAnn,Lee,ann@example.com\n")
    import_csv(client, "bad", filename="x.csv")
    assert os.listdir(settings.UPLOAD_DIR) == []
