def test_locations(client):
    response = client.get("/api/locations")

    assert response.status_code == 200
    names = [location["name"] for location in response.json()["locations"]]
    assert names == ["Surat", "Ahmedabad", "Rajkot", "Junagadh"]


def test_packages_for_location(client):
    body = client.get("/api/packages/Rajkot").json()

    assert set(body["packages"]) == {"Silver", "Gold"}
    assert body["packages"]["Gold"]["price"] == 3200
    assert body["packages"]["Gold"]["popular"] is True


def test_packages_for_unknown_location(client):
    response = client.get("/api/packages/Mumbai")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "message": "Location not found. Available locations: Surat, Ahmedabad, Rajkot, Junagadh",
    }


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_otp_login(client, otp_store):
    sent = client.post("/api/auth/send-otp", json={"phone": "+91 98765 43210", "name": "Asha"})

    assert sent.status_code == 200
    assert sent.json()["isDemo"] is True
    assert "otp" not in sent.json()

    code = otp_store._entries["9876543210"].code
    verified = client.post("/api/auth/verify-otp", json={"phone": "9876543210", "otp": code})

    assert verified.status_code == 200
    assert verified.json() == {
        "success": True,
        "phone": "9876543210",
        "name": "Asha",
        "orderCount": 0,
    }


def test_otp_resend_cooldown(client):
    client.post("/api/auth/send-otp", json={"phone": "9876543210"})

    again = client.post("/api/auth/send-otp", json={"phone": "9876543210"})

    assert again.status_code == 429
    assert again.json()["success"] is False


def test_otp_errors(client):
    assert client.post("/api/auth/send-otp", json={"phone": "123"}).status_code == 400
    assert client.post("/api/auth/verify-otp", json={"phone": "9876543210", "otp": "123456"}).status_code == 400
    assert client.post("/api/auth/verify-otp", json={"phone": "9876543210"}).status_code == 400
