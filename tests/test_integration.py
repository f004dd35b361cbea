"""
Integration tests for the HTTP API.
Tests the full request pipeline: routing, auth, envelopes and error mapping.
"""

import pytest
from fastapi.testclient import TestClient

from healthpass.config import settings
from healthpass.main import app
from healthpass.services import init_services

API = settings.api_prefix

CARD = {
    "first_name": "Rami",
    "last_name": "Haddad",
    "government_id": "123456",
    "date_of_birth": "15/03/1980",
    "gender": "male",
}

LAB_REPORT = {
    "isHealthcareRelated": True,
    "suggestedName": "Lipid Panel",
    "documentType": "lab_report",
    "documentDate": "2024-02-10",
    "notes": "LDL elevated",
    "extractedText": "LDL 190",
    "confidence": 0.9,
}


def scripted_model(prompt, json_mode):
    """Answers each kind of AI request the API can make."""
    if not json_mode:
        return "Adult patient on antiplatelet therapy."
    if "identity card" in prompt:
        return CARD
    if "isHealthcareRelated" in prompt:
        return LAB_REPORT
    if "Classify the allergen" in prompt:
        return {"type": "drug"}
    if "autocomplete suggestions" in prompt:
        return {"suggestions": [{"name": "Metformin", "brandNames": ["Glucophage"], "commonDosages": ["500mg"]}]}
    if "medicine package" in prompt:
        return {"medicationName": "Metformin", "dosageAmount": "500mg", "frequency": "twice_daily", "confidence": 0.9}
    return {}


@pytest.fixture
def client(storage, fake_provider):
    init_services(storage, fake_provider(handler=scripted_model))
    return TestClient(app)


@pytest.fixture
def auth_headers(client):
    """Sign in by ID card and return auth headers."""
    response = client.post(
        f"{API}/auth/verify-id",
        files={"image": ("card.jpg", b"jpeg-bytes", "image/jpeg")},
    )
    token = response.json()["data"]["token"]["accessToken"]
    return {"Authorization": f"Bearer {token}"}


class TestProbes:

    def test_root_and_health(self, client):
        assert client.get("/").json()["status"] == "running"
        assert client.get("/health").json()["status"] == "healthy"


class TestAuthAPI:

    def test_register_then_login(self, client):
        files = {"image": ("card.jpg", b"jpeg-bytes", "image/jpeg")}
        first = client.post(f"{API}/auth/verify-id", files=files)
        assert first.status_code == 200
        body = first.json()
        assert body["success"] is True
        assert body["data"]["isNewUser"] is True
        assert body["data"]["extractedData"]["governmentId"] == "123456"

        second = client.post(f"{API}/auth/verify-id", files=files).json()
        assert second["data"]["isNewUser"] is False
        assert second["data"]["user"]["id"] == body["data"]["user"]["id"]

    def test_refresh(self, client):
        login = client.post(
            f"{API}/auth/verify-id", files={"image": ("card.jpg", b"jpeg-bytes", "image/jpeg")}
        ).json()["data"]
        response = client.post(f"{API}/auth/refresh", json={"refreshToken": login["token"]["refreshToken"]})
        assert response.status_code == 200
        assert response.json()["data"]["accessToken"]

        bad = client.post(f"{API}/auth/refresh", json={"refreshToken": login["token"]["accessToken"]})
        assert bad.status_code == 401
        assert bad.json()["success"] is False

    def test_unsupported_card_upload(self, client):
        response = client.post(
            f"{API}/auth/verify-id", files={"image": ("card.gif", b"gif", "image/gif")}
        )
        assert response.status_code == 400

    def test_protected_routes_need_a_token(self, client):
        assert client.get(f"{API}/users/me").status_code == 401
        assert client.get(f"{API}/medications", headers={"Authorization": "Bearer junk"}).status_code == 401


class TestRecordsAPI:

    def test_crud_and_envelope(self, client, auth_headers):
        created = client.post(f"{API}/medications", headers=auth_headers, json={
            "medicationName": "Aspirin", "dosageAmount": "100mg", "frequency": "once_daily",
        })
        assert created.status_code == 201
        medication = created.json()["data"]
        assert medication["medicationName"] == "Aspirin"
        assert medication["isActive"] is True

        duplicate = client.post(f"{API}/medications", headers=auth_headers, json={
            "medicationName": "aspirin", "dosageAmount": "100MG", "frequency": "weekly",
        })
        assert duplicate.status_code == 409

        listed = client.get(f"{API}/medications", headers=auth_headers).json()["data"]
        assert [m["id"] for m in listed] == [medication["id"]]

        deleted = client.delete(f"{API}/medications/{medication['id']}", headers=auth_headers)
        assert deleted.status_code == 200
        assert client.get(f"{API}/medications", headers=auth_headers).json()["data"] == []

    def test_validation_errors_are_400(self, client, auth_headers):
        response = client.post(f"{API}/medications", headers=auth_headers, json={"medicationName": "Aspirin"})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert {e["field"] for e in body["validationErrors"]} >= {"dosageAmount", "frequency"}

        bad_enum = client.post(f"{API}/allergies", headers=auth_headers, json={"allergen": "Dust", "type": "cosmic"})
        assert bad_enum.status_code == 400

    def test_allergy_type_is_classified(self, client, auth_headers):
        response = client.post(f"{API}/allergies", headers=auth_headers, json={"allergen": "Penicillin"})
        assert response.json()["data"]["type"] == "drug"

    def test_unknown_record_is_404(self, client, auth_headers):
        response = client.get(f"{API}/medical-conditions/nope", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_lifestyle_and_summary(self, client, auth_headers):
        client.post(f"{API}/lifestyle", headers=auth_headers, json={
            "habits": [{"category": "smoking", "frequency": "daily"}],
        })
        client.post(f"{API}/medical-conditions", headers=auth_headers, json={"name": "Hypertension"})

        summary = client.get(f"{API}/users/summary", headers=auth_headers).json()["data"]
        assert summary["fullName"] == "Rami Haddad"
        assert [c["name"] for c in summary["medicalConditions"]] == ["Hypertension"]
        assert summary["lifestyle"]["habits"][0]["category"] == "smoking"


class TestDocumentsAPI:

    def test_upload_confirm_and_download(self, client, auth_headers):
        upload = client.post(
            f"{API}/documents/upload",
            headers=auth_headers,
            files={"file": ("labs.pdf", b"%PDF-1.4 lipid panel", "application/pdf")},
        )
        assert upload.status_code == 201
        data = upload.json()["data"]
        assert data["aiSuggestions"]["suggestedName"] == "Lipid Panel"

        # Drafts stay out of the list until confirmed
        assert client.get(f"{API}/documents", headers=auth_headers).json()["data"] == []

        confirmed = client.post(f"{API}/documents/{data['id']}/confirm", headers=auth_headers, json={
            "documentName": "Lipid Panel Feb 2024", "documentType": "lab_report",
        })
        assert confirmed.status_code == 200
        assert confirmed.json()["data"]["isConfirmed"] is True

        path = data["fileUrl"].split(API, 1)[1]
        download = client.get(f"{API}{path}")
        assert download.status_code == 200
        assert download.content == b"%PDF-1.4 lipid panel"
        assert download.headers["content-type"].startswith("application/pdf")

    def test_bad_file_link(self, client):
        assert client.get(f"{API}/files/forged").status_code == 401

    def test_unsupported_document_type(self, client, auth_headers):
        response = client.post(
            f"{API}/documents/upload",
            headers=auth_headers,
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400


class TestAutocompleteAPI:

    def test_suggestions_in_envelope(self, client, auth_headers):
        response = client.get(f"{API}/autocomplete/medications", headers=auth_headers, params={"q": "metf"})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["query"] == "metf"
        assert data["hasMore"] is False
        assert data["suggestions"][0]["name"] == "Metformin"
        assert data["suggestions"][0]["brandNames"] == ["Glucophage"]

        for kind in ("medical-conditions", "allergies"):
            listed = client.get(f"{API}/autocomplete/{kind}", headers=auth_headers, params={"q": "me", "limit": 3})
            assert listed.status_code == 200
            assert listed.json()["success"] is True

    def test_short_query_and_bad_limit(self, client, auth_headers):
        short = client.get(f"{API}/autocomplete/allergies", headers=auth_headers, params={"q": "p"})
        assert short.json()["data"]["suggestions"] == []
        assert client.get(
            f"{API}/autocomplete/allergies", headers=auth_headers, params={"q": "pen", "limit": 50}
        ).status_code == 400

    def test_scan_medicine(self, client, auth_headers):
        response = client.post(
            f"{API}/autocomplete/medications/scan",
            headers=auth_headers,
            files={"image": ("box.jpg", b"jpeg-bytes", "image/jpeg")},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["medicationName"] == "Metformin"
        assert data["frequency"] == "twice_daily"

        rejected = client.post(
            f"{API}/autocomplete/medications/scan",
            headers=auth_headers,
            files={"image": ("leaflet.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert rejected.status_code == 400

    def test_requires_a_token(self, client):
        assert client.get(f"{API}/autocomplete/medications", params={"q": "metf"}).status_code == 401
        assert client.post(
            f"{API}/autocomplete/medications/scan", files={"image": ("box.jpg", b"jpeg", "image/jpeg")}
        ).status_code == 401


class TestHealthPassAPI:

    def _create_pass(self, client, auth_headers):
        client.post(f"{API}/medications", headers=auth_headers, json={
            "medicationName": "Aspirin", "dosageAmount": "100mg", "frequency": "once_daily",
        })
        response = client.post(f"{API}/health-passes", headers=auth_headers, json={
            "appointmentSpecialty": "cardiology", "appointmentNotes": "Chest pain follow-up",
        })
        assert response.status_code == 201
        return response.json()["data"]

    def test_full_flow(self, client, auth_headers):
        health_pass = self._create_pass(client, auth_headers)
        assert health_pass["status"] == "generated"
        assert health_pass["qrCode"].startswith("data:image/png;base64,")
        assert health_pass["aiProfileSummary"] == "Adult patient on antiplatelet therapy."
        medication_id = health_pass["medications"][0]["data"]["id"]

        # Clinicians need no token
        preview = client.get(f"{API}/health-passes/access/{health_pass['accessCode']}")
        assert preview.status_code == 200
        shown = preview.json()["data"]
        assert shown["patientName"] == "Rami Haddad"
        assert [m["medicationName"] for m in shown["medications"]] == ["Aspirin"]

        owner_view = client.get(f"{API}/health-passes/{health_pass['id']}", headers=auth_headers).json()["data"]
        assert owner_view["status"] == "shared"
        assert owner_view["accessCount"] == 1

        toggled = client.patch(f"{API}/health-passes/{health_pass['id']}/toggle-item", headers=auth_headers, json={
            "itemType": "medication", "itemId": medication_id, "isEnabled": False,
        })
        assert toggled.status_code == 200
        shown = client.get(f"{API}/health-passes/access/{health_pass['accessCode']}").json()["data"]
        assert shown["medications"] == []

        listed = client.get(f"{API}/health-passes", headers=auth_headers).json()["data"]
        assert [p["id"] for p in listed] == [health_pass["id"]]

    def test_regenerate_qr_invalidates_old_code(self, client, auth_headers):
        health_pass = self._create_pass(client, auth_headers)
        rotated = client.post(f"{API}/health-passes/{health_pass['id']}/regenerate-qr", headers=auth_headers)
        assert rotated.status_code == 200

        assert client.get(f"{API}/health-passes/access/{health_pass['accessCode']}").status_code == 404
        new_code = rotated.json()["data"]["accessCode"]
        assert client.get(f"{API}/health-passes/access/{new_code}").status_code == 200

    def test_identity_toggles_rejected(self, client, auth_headers):
        health_pass = self._create_pass(client, auth_headers)
        response = client.patch(f"{API}/health-passes/{health_pass['id']}", headers=auth_headers, json={
            "dataToggles": {"name": False},
        })
        assert response.status_code == 400

        hide_meds = client.patch(f"{API}/health-passes/{health_pass['id']}", headers=auth_headers, json={
            "dataToggles": {"medications": False},
        })
        assert hide_meds.json()["data"]["dataToggles"]["medications"] is False

    def test_unknown_code_is_404(self, client):
        response = client.get(f"{API}/health-passes/access/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Health pass not found or expired"}

    def test_bad_specialty(self, client, auth_headers):
        response = client.post(f"{API}/health-passes", headers=auth_headers, json={"appointmentSpecialty": "astrology"})
        assert response.status_code == 400
