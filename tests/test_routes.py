import pytest

from sim.components import create_component


def _circuit():
    components = [
        create_component("battery", "b1"),
        create_component("battery", "b2"),
        create_component("led", "l"),
    ]
    wires = [
        {"id": "w1", "from": "b1", "to": "b2"},
        {"id": "w2", "from": "b2", "to": "l"},
        {"id": "w3", "from": "l", "to": "b1"},
    ]
    return components, wires


def test_simulate_returns_updated_components(client):
    components, wires = _circuit()

    response = client.post("/api/simulate", json={"components": components, "wires": wires, "steps": 3})

    assert response.status_code == 200
    data = response.get_json()
    led = next(comp for comp in data["components"] if comp["id"] == "l")
    assert led["brightness"] == pytest.approx(0.65)
    assert data["debugInfo"]["steps"] == 3
    assert data["debugInfo"]["dt"] == pytest.approx(0.1)
    assert data["debugInfo"]["islands"][0]["sourceVoltage"] == pytest.approx(1.8)


def test_simulate_uses_configured_default_step(app, client):
    app.config["SIM_DEFAULT_DT"] = 0.5
    components, wires = _circuit()

    data = client.post("/api/simulate", json={"components": components, "wires": wires}).get_json()

    assert data["debugInfo"]["dt"] == pytest.approx(0.5)


@pytest.mark.parametrize(
    "payload, message",
    [
        ({}, "Komponentlistan saknas."),
        ({"components": {"id": 1}}, "Komponentlistan saknas."),
        ({"components": [], "wires": "w1"}, "Kopplingslistan är ogiltig."),
        ({"components": [], "dt": -0.1}, "Ogiltigt tidssteg."),
        ({"components": [], "dt": "0.1"}, "Ogiltigt tidssteg."),
        ({"components": [], "steps": 0}, "Ogiltigt antal steg."),
        ({"components": [], "steps": 51}, "Ogiltigt antal steg."),
    ],
)
def test_simulate_rejects_bad_payloads(client, payload, message):
    response = client.post("/api/simulate", json=payload)

    assert response.status_code == 400
    assert response.get_json() == {"error": message}


def test_simulate_rejects_non_object_body(client):
    response = client.post("/api/simulate", json=[1, 2, 3])

    assert response.status_code == 400


def test_reset(client):
    battery = create_component("battery", "b")
    battery["charge"] = 0.1

    response = client.post("/api/reset", json={"components": [battery]})

    assert response.status_code == 200
    assert response.get_json()["components"][0]["charge"] == 1.0


def test_reset_requires_components(client):
    response = client.post("/api/reset", json={"wires": []})

    assert response.status_code == 400


def test_topology(client):
    components, wires = _circuit()

    data = client.post("/api/topology", json={"components": components, "wires": wires}).get_json()

    assert len(data["islands"]) == 1
    assert data["islands"][0]["members"] == ["b1", "b2", "l"]
    assert data["islands"][0]["branches"] == [["b1", "b2", "l"]]


def test_visual_state(client):
    led = create_component("led", "l")
    led["brightness"] = 0.9
    components = [led, {"id": "x", "type": "switch"}]

    data = client.post("/api/visual-state", json={"components": components}).get_json()

    assert data["visualState"] == [
        {
            "id": "l",
            "type": "led",
            "state": {
                "brightness": 0.9,
                "brightnessPercent": 90,
                "glowIntensity": 0.9,
                "glowRadius": pytest.approx(18.5),
                "state": "bright",
            },
        }
    ]


def test_create_component(client):
    response = client.get("/api/components/capacitor?id=c7&x=12&y=30")

    assert response.status_code == 200
    assert response.get_json()["component"] == {
        "id": "c7",
        "type": "capacitor",
        "x": 12,
        "y": 30,
        "capacitance": 0.1,
        "voltage": 0.0,
        "maxVoltage": 5.0,
    }


def test_create_component_rejects_unknown_kind(client):
    response = client.get("/api/components/transistor")

    assert response.status_code == 404
    assert response.get_json() == {"error": "Okänd komponenttyp."}
