import pytest

BASE = "/api/v1/attribution"


def post_journey(client, channels, value=1.0):
    return client.post(
        f"{BASE}/journeys",
        json={
            "touchpoints": [{"channel": c, "campaign": f"{c}-q1"} for c in channels],
            "conversion_value": value,
        },
    )


def test_attribute_journey(client):
    response = post_journey(client, ["search", "social", "email"], value=100)

    assert response.status_code == 200
    data = response.json()
    assert [tp["weight"] for tp in data] == pytest.approx([0.4, 0.3, 0.3])
    assert [tp["contribution"] for tp in data] == pytest.approx([40.0, 30.0, 30.0])
    assert data[1]["assisted"] is True


def test_empty_journey_rejected(client):
    response = client.post(f"{BASE}/journeys", json={"touchpoints": []})
    assert response.status_code == 422


def test_breakdown(client):
    post_journey(client, ["search", "email"])
    post_journey(client, ["email"])

    response = client.get(f"{BASE}/breakdown")

    assert response.status_code == 200
    data = response.json()
    assert [c["channel"] for c in data] == ["search", "email"]
    assert data[1]["last_touch"] == 2
    assert data[1]["total_conversions"] == pytest.approx(1 + 3 / 7)


def test_channel_attribution(client):
    post_journey(client, ["search", "display", "email"])

    response = client.get(f"{BASE}/channels/display")

    assert response.status_code == 200
    assert response.json()["assisted"] == 1


def test_unknown_channel(client):
    response = client.get(f"{BASE}/channels/radio")

    assert response.status_code == 200
    assert response.json()["total_conversions"] == 0.0
