"""Tests for the REST API."""
import pytest

RECEIPT = {
    "storeName": "The Loft",
    "address": "Coimbatore, Tamil Nadu",
    "orderNumber": "ORD-001",
    "customerName": "John Doe",
    "paymentMethod": "Cash",
    "items": [{"name": "Cappuccino", "qty": 2, "price": 150}],
    "subtotal": 300,
    "tax": 54,
    "total": 354,
}

NETWORK_PRINTER = {
    "name": "Counter",
    "kind": "EPSON",
    "transport_kind": "NETWORK",
    "network_address": "192.168.1.50",
}


@pytest.fixture
def fake_drivers(app, recorder):
    app.extensions["posprint"].driver_factory = recorder
    return recorder


def create(client, **overrides):
    response = client.post("/api/printers", json={**NETWORK_PRINTER, **overrides})
    assert response.status_code == 201
    return response.get_json()


class TestPrintersAPI:

    def test_create_and_get(self, client):
        printer = create(client)
        assert printer["network_port"] == 9100
        assert printer["is_default"] is False

        response = client.get(f"/api/printers/{printer['id']}")
        assert response.status_code == 200
        assert response.get_json()["name"] == "Counter"

    def test_create_requires_name(self, client):
        response = client.post("/api/printers", json={"kind": "EPSON"})
        assert response.status_code == 400

    def test_create_rejects_unknown_transport(self, client):
        response = client.post("/api/printers", json={**NETWORK_PRINTER, "transport_kind": "SERIAL"})
        assert response.status_code == 400
        assert "transport_kind" in response.get_json()["error"]

    def test_list_default_first(self, client):
        a = create(client, name="A")
        b = create(client, name="B", is_default=True)

        printers = client.get("/api/printers").get_json()["printers"]
        assert [p["id"] for p in printers] == [b["id"], a["id"]]

    def test_update(self, client):
        printer = create(client)
        response = client.put(f"/api/printers/{printer['id']}", json={"network_port": 9101})
        assert response.status_code == 200
        assert response.get_json()["network_port"] == 9101

    def test_missing_printer_is_404(self, client):
        assert client.get("/api/printers/99").status_code == 404
        assert client.put("/api/printers/99", json={"name": "x"}).status_code == 404
        assert client.delete("/api/printers/99").status_code == 404
        assert client.post("/api/printers/99/default").status_code == 404

    def test_default_endpoints(self, client):
        assert client.get("/api/printers/default").status_code == 404

        a = create(client, name="A", is_default=True)
        b = create(client, name="B")
        response = client.post(f"/api/printers/{b['id']}/default")
        assert response.get_json()["is_default"] is True

        default = client.get("/api/printers/default").get_json()
        assert default["id"] == b["id"]
        assert client.get(f"/api/printers/{a['id']}").get_json()["is_default"] is False

    def test_delete(self, client):
        printer = create(client)
        assert client.delete(f"/api/printers/{printer['id']}").get_json() == {"success": True}
        assert client.get(f"/api/printers/{printer['id']}").status_code == 404


class TestPrintAPI:

    def test_print_without_printer(self, client, fake_drivers):
        response = client.post("/api/print-receipt", json=RECEIPT)
        assert response.status_code == 200
        assert response.get_json() == {"success": False, "message": "no printer configured"}

    def test_print_on_default(self, client, fake_drivers):
        create(client, is_default=True)

        response = client.post("/api/print-receipt", json=RECEIPT)

        assert response.get_json()["success"] is True
        assert b"$300.00" in b"".join(fake_drivers.drivers[0].writes)

    def test_print_on_named_printer(self, client, fake_drivers):
        create(client, name="A", is_default=True)
        b = create(client, name="B", network_address="192.168.1.51")

        response = client.post("/api/print-receipt", json={**RECEIPT, "printer_id": b["id"]})

        assert response.get_json()["success"] is True
        assert fake_drivers.drivers[0].descriptor.address == "192.168.1.51"

    def test_print_failure_is_structured(self, client, fake_drivers):
        fake_drivers.mode = "refused"
        create(client, is_default=True)

        body = client.post("/api/print-receipt", json=RECEIPT).get_json()

        assert body["success"] is False
        assert "refused" in body["message"]

    def test_oversized_qr_code_is_structured_failure(self, client, fake_drivers):
        create(client, kind="GENERIC", is_default=True)

        response = client.post("/api/print-receipt", json={**RECEIPT, "qrCode": "X" * 5000})

        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is False
        assert "QR data" in body["message"]

    def test_bad_payload(self, client, fake_drivers):
        response = client.post("/api/print-receipt", json={**RECEIPT, "items": None})
        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_test_print(self, client, fake_drivers):
        create(client, is_default=True)

        body = client.post("/api/test-print").get_json()

        assert body["success"] is True
        assert b"TEST-001" in b"".join(fake_drivers.drivers[0].writes)

    def test_preview_uses_printer_width(self, client):
        create(client, kind="GENERIC", is_default=True)

        body = client.post("/api/preview", json={**RECEIPT, "qrCode": "ORD-001"}).get_json()

        assert body["width"] == 42
        assert "-" * 42 in body["preview"]
        assert "[QR:ORD-001]" in body["preview"]

    def test_preview_without_printer(self, client):
        body = client.post("/api/preview", json=RECEIPT).get_json()
        assert body["width"] == 48
