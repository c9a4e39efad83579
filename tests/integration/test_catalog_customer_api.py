"""API tests for drugs, stores and customers."""

import pytest

DRUG = {
    "name": "Ibuprofen",
    "genericName": "Ibuprofen",
    "category": "NSAID",
    "strength": "400mg",
    "dosageForm": "Tablet",
}


class TestDrugs:
    def test_crud_flow(self, client, auth_headers):
        created = client.post("/drugs", json=DRUG, headers=auth_headers("pharmacist"))
        drug_id = created.get_json()["data"]["id"]

        updated = client.put(
            f"/drugs/{drug_id}",
            json={"manufacturer": "Kinapharma"},
            headers=auth_headers("pharmacist"),
        )
        deactivated = client.delete(f"/drugs/{drug_id}", headers=auth_headers("manager"))
        fetched = client.get(f"/drugs/{drug_id}", headers=auth_headers("cashier"))

        assert created.status_code == 201
        assert created.get_json()["data"]["fullName"].startswith("Ibuprofen")
        assert updated.get_json()["data"]["manufacturer"] == "Kinapharma"
        assert updated.get_json()["data"]["strength"] == "400mg"
        assert deactivated.get_json()["data"]["isActive"] is False
        assert fetched.get_json()["data"]["isActive"] is False

    def test_missing_fields(self, client, auth_headers):
        response = client.post(
            "/drugs", json={"name": "Ibuprofen"}, headers=auth_headers("pharmacist")
        )

        assert response.status_code == 422
        assert "genericName: is required" in response.get_json()["message"]

    def test_cashier_may_read_but_not_write(self, client, auth_headers, pos_data):
        listed = client.get("/drugs?search=para", headers=auth_headers("cashier"))
        created = client.post("/drugs", json=DRUG, headers=auth_headers("cashier"))

        assert [d["name"] for d in listed.get_json()["data"]] == ["Paracetamol"]
        assert created.status_code == 403

    def test_unknown_drug(self, client, auth_headers):
        assert client.get("/drugs/999", headers=auth_headers()).status_code == 404


class TestStores:
    def test_create_and_list(self, client, auth_headers):
        created = client.post(
            "/stores",
            json={"name": "Osu Branch", "location": "Oxford Street", "city": "Accra"},
            headers=auth_headers("manager"),
        )
        listed = client.get("/stores", headers=auth_headers("cashier"))

        assert created.status_code == 201
        assert [s["name"] for s in listed.get_json()["data"]] == ["Osu Branch"]

    def test_invalid_email(self, client, auth_headers):
        response = client.post(
            "/stores",
            json={"name": "Osu Branch", "location": "Osu", "email": "not-an-email"},
            headers=auth_headers("manager"),
        )

        assert response.status_code == 422
        assert response.get_json()["field"] == "email"


class TestCustomers:
    def test_cashier_registers_customer(self, client, auth_headers):
        response = client.post(
            "/customers",
            json={"name": "Kofi Owusu", "phone": "+233551234567", "city": "Tema"},
            headers=auth_headers("cashier"),
        )

        data = response.get_json()["data"]
        assert response.status_code == 201
        assert data["phone"] == "+233551234567"
        assert data["isActive"] is True

    @pytest.mark.parametrize("phone", ["12345", "0551234", "+2335512345678", "05512345ab"])
    def test_rejects_phone_outside_pattern(self, client, auth_headers, phone):
        response = client.post(
            "/customers",
            json={"name": "Kofi Owusu", "phone": phone},
            headers=auth_headers("cashier"),
        )

        assert response.status_code == 422
        assert response.get_json()["field"] == "phone"

    def test_duplicate_phone_is_conflict(self, client, auth_headers, pos_data):
        response = client.post(
            "/customers",
            json={"name": "Someone Else", "phone": "0241234567"},
            headers=auth_headers("cashier"),
        )

        assert response.status_code == 409
        assert response.get_json()["error"] == "duplicate"

    def test_search(self, client, auth_headers, pos_data):
        found = client.get("/customers/search?q=Mensah", headers=auth_headers("cashier"))
        blank = client.get("/customers/search?q=", headers=auth_headers("cashier"))

        assert [c["id"] for c in found.get_json()["data"]] == [pos_data.customer_id]
        assert blank.status_code == 422

    def test_deactivate_and_reactivate(self, client, auth_headers, pos_data):
        url = f"/customers/{pos_data.customer_id}"

        forbidden = client.delete(url, headers=auth_headers("cashier"))
        deactivated = client.delete(url, headers=auth_headers("manager"))
        hidden = client.get("/customers/search?q=Mensah", headers=auth_headers())
        reactivated = client.post(f"{url}/reactivate", headers=auth_headers("manager"))

        assert forbidden.status_code == 403
        assert deactivated.get_json()["data"]["isActive"] is False
        assert hidden.get_json()["data"] == []
        assert reactivated.get_json()["data"]["isActive"] is True

    def test_update(self, client, auth_headers, pos_data):
        response = client.put(
            f"/customers/{pos_data.customer_id}",
            json={"city": "Kumasi"},
            headers=auth_headers("cashier"),
        )

        assert response.status_code == 200
        assert response.get_json()["data"]["city"] == "Kumasi"
        assert response.get_json()["data"]["phone"] == "0241234567"
