from unittest.mock import patch

from tests.helpers import create_test_lead_in_db
from app.services.templates import extract_placeholders, render_template


def test_extract_placeholders_keeps_first_seen_order():
    assert extract_placeholders("Hi {firstName} {lastName}, {firstName}!") == ["firstName", "lastName"]
    assert extract_placeholders("No placeholders") == []

def test_render_template_replaces_every_occurrence():
    rendered = render_template("{a}-{b}-{a}-{c}", {"a": "1", "b": "2"})
    assert rendered == "1-2-1-{c}"

def test_generate_messages(client, db_session, db_helpers):
    lead = create_test_lead_in_db(db_session, {
        "first_name": "Jane",
        "last_name": "Doe",
        "company_name": "Acme"
    })
    response = client.post("/leads/generate-messages", json={
        "template": "Hi {firstName} {lastName} from {companyName}. Bye {firstName}!",
        "leadIds": [lead.id]
    })
    assert response.status_code == 200
    assert response.json() == {"results": [{
        "leadId": lead.id,
        "success": True,
        "message": "Hi Jane Doe from Acme. Bye Jane!"
    }]}
    assert db_helpers.get_lead(lead.id).message == "Hi Jane Doe from Acme. Bye Jane!"

def test_generate_messages_reports_missing_fields_and_unknown_leads(client, db_session, db_helpers):
    lead = create_test_lead_in_db(db_session, {"first_name": "Jane"})
    response = client.post("/leads/generate-messages", json={
        "template": "Hi {firstName} {lastName} at {companyName}",
        "leadIds": [9999, lead.id]
    })
    assert response.status_code == 200
    assert response.json()["results"] == [
        {"leadId": 9999, "success": False, "error": "Lead not found"},
        {"leadId": lead.id, "success": False, "error": "Missing fields: lastName, companyName"},
    ]
    assert db_helpers.get_lead(lead.id).message is None

def test_generate_messages_rejects_unknown_fields_before_querying(client, db_session):
    with patch.object(db_session, "query", wraps=db_session.query) as query:
        response = client.post("/leads/generate-messages", json={
            "template": "Hi {firstName}, your {phone} and {age}",
            "leadIds": [1]
        })
        query.assert_not_called()
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid template fields"
    assert body["details"] == (
        "Fields not available: phone, age. Valid fields are: "
        "firstName, lastName, email, jobTitle, countryCode, companyName, message"
    )

def test_generate_messages_single_unknown_field(client, db_session):
    response = client.post("/leads/generate-messages", json={"template": "{gender}", "leadIds": [1]})
    assert response.status_code == 400
    assert response.json()["details"].startswith("Field not available: gender.")

def test_generate_messages_requires_template(client, db_session):
    for template in ("", None, 42):
        response = client.post("/leads/generate-messages", json={"template": template, "leadIds": [1]})
        assert response.status_code == 400
        assert response.json() == {
            "error": "Invalid request",
            "details": "template must be a non-empty string"
        }

def test_generate_messages_validates_lead_ids(client, db_session):
    response = client.post("/leads/generate-messages", json={"template": "Hi {firstName}", "leadIds": [0]})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid lead IDs"
