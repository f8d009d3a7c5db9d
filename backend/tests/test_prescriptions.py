"""
Prescription API Routes Tests

- GET    /api/prescriptions
- POST   /api/prescriptions
- GET    /api/prescriptions/{id}
- PUT    /api/prescriptions/{id}
- DELETE /api/prescriptions/{id}
"""

import re

RX = {
    "patientId": "PAT-1",
    "patientName": "Asha Rao",
    "doctorName": "Dr. Sarah Wilson",
    "medications": [{"name": "Amoxicillin", "dose": "250mg", "qty": "15"}],
    "diagnosis": "Tonsillitis",
}


class TestCreatePrescription:
    def test_defaults_are_applied(self, client):
        res = client.post("/api/prescriptions", json=RX)

        assert res.status_code == 201
        rx = res.json()
        assert rx["id"].startswith("RX-")
        assert rx["status"] == "Active"
        assert rx["medications"] == RX["medications"]
        assert rx["diagnosis"] == "Tonsillitis"
        for field in ("investigation", "fee", "notes", "injections", "additionalMedicines"):
            assert rx[field] == ""
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", rx["prescriptionDate"])
        assert rx["date"].startswith(rx["prescriptionDate"])
        assert "T" in rx["date"]

    def test_non_list_medications_are_coerced(self, client):
        rx = client.post("/api/prescriptions", json={**RX, "medications": "Amoxicillin"}).json()
        assert rx["medications"] == []

    def test_empty_body_is_accepted(self, client):
        res = client.post("/api/prescriptions", json={})
        assert res.status_code == 201
        assert res.json()["patientId"] is None

    def test_supplied_values_win(self, client):
        rx = client.post(
            "/api/prescriptions",
            json={**RX, "id": "RX-42", "status": "Completed", "prescriptionDate": "2026-01-05", "fee": "300"},
        ).json()

        assert rx["id"] == "RX-42"
        assert rx["status"] == "Completed"
        assert rx["prescriptionDate"] == "2026-01-05"
        assert rx["fee"] == "300"

    def test_unknown_fields_are_dropped(self, client):
        rx = client.post("/api/prescriptions", json={**RX, "internalFlag": True}).json()
        assert "internalFlag" not in rx

    def test_owner_is_not_taken_from_payload(self, client):
        rx = client.post("/api/prescriptions", json={**RX, "userId": "2"}).json()
        assert "userId" not in rx

    def test_owner_comes_from_session(self, doctor_client):
        rx = doctor_client.post("/api/prescriptions", json={**RX, "userId": "2"}).json()
        assert rx["userId"] == "1"

    def test_patient_is_not_checked(self, client):
        res = client.post("/api/prescriptions", json={**RX, "patientId": "PAT-DELETED"})
        assert res.status_code == 201

    def test_sequential_creates_get_distinct_ids_newest_first(self, client):
        first = client.post("/api/prescriptions", json=RX).json()
        second = client.post("/api/prescriptions", json={**RX, "diagnosis": "Follow-up"}).json()

        listed = client.get("/api/prescriptions").json()

        assert first["id"] != second["id"]
        assert [p["id"] for p in listed] == [second["id"], first["id"]]

    def test_write_failure_is_500(self, client, fake_bin):
        fake_bin.fail_writes = 500
        res = client.post("/api/prescriptions", json=RX)
        assert res.status_code == 500
        assert res.json()["detail"] == "Failed to create prescription"


class TestReadPrescriptions:
    def test_filter_by_patient(self, client):
        client.post("/api/prescriptions", json=RX)
        client.post("/api/prescriptions", json={**RX, "patientId": "PAT-2"})

        listed = client.get("/api/prescriptions", params={"patient_id": "PAT-2"}).json()

        assert [p["patientId"] for p in listed] == ["PAT-2"]

    def test_get_by_id(self, client):
        rx = client.post("/api/prescriptions", json=RX).json()
        assert client.get(f"/api/prescriptions/{rx['id']}").json() == rx

    def test_unknown_id_is_404(self, client):
        res = client.get("/api/prescriptions/RX-MISSING")
        assert res.status_code == 404
        assert res.json()["detail"] == "Prescription not found"

    def test_legacy_document_has_no_prescriptions(self, client, fake_bin):
        fake_bin.record = [{"id": "PAT-OLD"}]
        assert client.get("/api/prescriptions").json() == []


class TestUpdateAndDeletePrescription:
    def test_partial_update(self, client):
        rx = client.post("/api/prescriptions", json=RX).json()

        updated = client.put(f"/api/prescriptions/{rx['id']}", json={"status": "Completed"}).json()

        assert updated == {**rx, "status": "Completed"}

    def test_owner_cannot_be_changed(self, doctor_client):
        rx = doctor_client.post("/api/prescriptions", json=RX).json()

        updated = doctor_client.put(f"/api/prescriptions/{rx['id']}", json={"userId": "2"}).json()

        assert updated == rx

    def test_update_unknown_is_404(self, client):
        res = client.put("/api/prescriptions/RX-MISSING", json={"status": "Completed"})
        assert res.status_code == 404

    def test_delete_is_idempotent(self, client):
        rx = client.post("/api/prescriptions", json=RX).json()

        assert client.delete(f"/api/prescriptions/{rx['id']}").json() == {"success": True}
        assert client.delete(f"/api/prescriptions/{rx['id']}").json() == {"success": True}
        assert client.get(f"/api/prescriptions/{rx['id']}").status_code == 404

    def test_saving_prescriptions_keeps_patients(self, client, fake_bin):
        patient = client.post("/api/patients", json={"firstName": "Asha", "lastName": "Rao", "phone": "1"}).json()
        client.post("/api/prescriptions", json=RX)

        assert [p["id"] for p in fake_bin.record["patients"]] == [patient["id"]]
        assert len(fake_bin.record["prescriptions"]) == 1
