"""
Tests for the HTTP collaborator endpoints: health, metrics, call rooms and
delivery records.
"""


class TestHealth:
    """Tests for the health check endpoint."""

    def test_health_empty(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "connections": 0,
            "rooms": 0,
            "deliveries": 0,
        }

    def test_health_counts_deliveries(self, client):
        client.post("/deliveries", json={"orderId": "o-1"})

        assert client.get("/health").json()["deliveries"] == 1


class TestMetrics:
    """Tests for the Prometheus endpoint."""

    def test_metrics_exposition(self, client):
        """Test relay metrics are exported."""
        client.get("/health")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "http_requests_total" in response.text
        assert "relay_rooms_active" in response.text


class TestCalls:
    """Tests for call room allocation."""

    def test_create_call_for_appointment(self, client):
        """Test both participants get the same room for an appointment."""
        first = client.post("/calls", json={"appointmentId": "42"})
        second = client.post("/calls", json={"appointmentId": "42"})

        assert first.status_code == 201
        assert first.json() == {"roomId": "appointment-42"}
        assert second.json() == first.json()

    def test_create_call_without_appointment(self, client):
        response = client.post("/calls")

        assert response.status_code == 201
        assert response.json()["roomId"].startswith("call-")

    def test_get_call_members(self, client):
        """Test the member list of an active room."""
        with client.websocket_connect("/ws") as ws:
            connection_id = ws.receive_json()["data"]["id"]
            ws.send_json(
                {"event": "join", "data": {"room": "appointment-9", "role": "doctor"}}
            )
            ws.receive_json()

            response = client.get("/calls/appointment-9")

        assert response.status_code == 200
        assert response.json() == {
            "roomId": "appointment-9",
            "members": [{"id": connection_id, "role": "doctor"}],
        }

    def test_get_unknown_call(self, client):
        response = client.get("/calls/nobody-here")

        assert response.status_code == 404
        assert response.json()["detail"] == "Room nobody-here has no members"


class TestDeliveries:
    """Tests for delivery record endpoints."""

    def test_create_delivery(self, client):
        response = client.post("/deliveries", json={"orderId": "o-1"})

        assert response.status_code == 201
        body = response.json()
        assert body["orderId"] == "o-1"
        assert body["status"] == "assigned"
        assert {"lat", "lng"} == set(body["location"])

    def test_create_delivery_generates_id(self, client):
        response = client.post("/deliveries", json={})

        assert response.status_code == 201
        assert response.json()["orderId"]

    def test_create_duplicate_delivery(self, client):
        """Test tracking the same order twice is a conflict."""
        client.post("/deliveries", json={"orderId": "o-1"})

        response = client.post("/deliveries", json={"orderId": "o-1"})

        assert response.status_code == 409

    def test_create_delivery_invalid_location(self, client):
        response = client.post(
            "/deliveries",
            json={"orderId": "o-1", "location": {"lat": 123, "lng": 0}},
        )

        assert response.status_code == 422

    def test_get_delivery(self, client):
        client.post("/deliveries", json={"orderId": "o-1"})

        response = client.get("/deliveries/o-1")

        assert response.status_code == 200
        assert response.json()["orderId"] == "o-1"

    def test_get_unknown_delivery(self, client):
        assert client.get("/deliveries/missing").status_code == 404

    def test_delete_delivery(self, client):
        client.post("/deliveries", json={"orderId": "o-1"})

        assert client.delete("/deliveries/o-1").status_code == 204
        assert client.delete("/deliveries/o-1").status_code == 404
        assert client.get("/deliveries/o-1").status_code == 404
