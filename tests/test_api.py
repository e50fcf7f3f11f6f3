import pytest
from fastapi.testclient import TestClient

from mermaid_sync.backend.config import Settings
from mermaid_sync.backend.main import create_app


FLOW = "graph TD\nA[Start] --> B[End]"


@pytest.fixture
def app(scheduler):
    return create_app(Settings(settle_delay=0.1, autosave_path=None), scheduler=scheduler)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def _load(client, text=FLOW):
    response = client.put("/api/diagram/text", json={"text": text})
    assert response.status_code == 200
    return response.json()


def test_health_check(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_text_change_replaces_graph(client):
    body = _load(client)
    assert body["reparsed"] is True
    assert body["version"] == 1
    assert [n["id"] for n in body["graph"]["nodes"]] == ["A", "B"]
    assert body["graph"]["edges"][0]["id"] == "A-B-0"


def test_node_edit_publishes_text_and_suppresses_echo(client):
    _load(client)
    response = client.patch("/api/nodes/A", json={"label": "Begin", "x": 300, "y": 40})
    assert response.status_code == 200
    assert response.json()["node"]["position"] == {"x": 300, "y": 40}

    state = client.get("/api/diagram").json()
    assert state["sync_state"] == "suppressed"
    assert state["text"] == "graph TD\n  A[Begin]\n  B[End]\n  A --> B\n"

    echo = client.put("/api/diagram/text", json={"text": state["text"]}).json()
    assert echo["reparsed"] is False
    assert echo["version"] == state["version"]
    assert echo["graph"]["nodes"][0]["position"] == {"x": 300, "y": 40}


def test_create_connect_and_delete(client):
    _load(client)
    node = client.post("/api/nodes", json={"id": "C", "label": "Third", "shape": "circle", "x": 1, "y": 2})
    assert node.status_code == 200
    assert node.json()["node"]["shape"] == "circle"

    edge = client.post("/api/edges", json={"source": "B", "target": "C", "label": "next"})
    assert edge.json()["edge"]["id"] == "B-C-0"

    assert client.patch("/api/edges/B-C-0", json={"label": None}).json()["edge"]["label"] is None
    assert client.delete("/api/nodes/B").status_code == 200

    graph = client.get("/api/diagram").json()["graph"]
    assert [n["id"] for n in graph["nodes"]] == ["A", "C"]
    assert graph["edges"] == []


def test_errors_map_to_status_codes(client):
    _load(client)
    assert client.get("/api/nodes/missing").status_code == 404
    assert client.delete("/api/edges/missing").status_code == 404
    assert client.post("/api/edges", json={"source": "A", "target": "missing"}).status_code == 400
    assert client.post("/api/nodes", json={"id": "A"}).status_code == 400


def test_new_diagram_switches_dialect(client):
    body = client.post("/api/diagram/new", json={"dialect": "sequence", "text": "sequenceDiagram\nA->>B: hi"}).json()
    assert body["dialect"] == "sequence"
    assert body["graph"]["edges"][0]["label"] == "hi"
    assert client.patch("/api/nodes/A", json={"shape": "diamond"}).status_code == 400


def test_rejected_patch_leaves_node_untouched(client):
    _load(client)
    response = client.patch("/api/nodes/A", json={"label": "Renamed", "shape": "participant", "x": 9})
    assert response.status_code == 400

    node = client.get("/api/nodes/A").json()["node"]
    assert node["label"] == "Start"
    assert node["shape"] == "rectangle"
    assert client.get("/api/diagram").json()["sync_state"] == "idle"


def test_patch_participant_in_sequence_diagram(client):
    client.post("/api/diagram/new", json={"dialect": "sequence", "text": "sequenceDiagram\nparticipant A"})
    response = client.patch("/api/nodes/A", json={"label": "Alice", "shape": "participant"})
    assert response.status_code == 200
    assert response.json()["node"]["label"] == "Alice"


def test_unwritable_ids_and_labels_are_rejected(client):
    _load(client)
    assert client.post("/api/nodes", json={"id": "my node"}).status_code == 400
    assert client.patch("/api/nodes/A", json={"label": "x]\nEvil((boom))"}).status_code == 400
    assert client.patch("/api/edges/A-B-0", json={"label": "a|b"}).status_code == 400
    assert [n["id"] for n in client.get("/api/diagram").json()["graph"]["nodes"]] == ["A", "B"]


def test_validate_endpoint(client):
    _load(client)
    body = client.get("/api/diagram/validate").json()
    assert body["summary"]["valid"] is True


def test_shapes_enum(client):
    assert client.get("/api/enums/shapes").json()["shapes"] == ["rectangle", "rounded", "circle", "diamond"]
    assert client.get("/api/enums/shapes", params={"dialect": "sequence"}).json()["shapes"] == ["participant"]


def test_stateless_conversion(client):
    graph = client.post("/api/convert/to-graph", json={"text": "graph TD\nA{Go?}", "dialect": "flowchart"}).json()["graph"]
    assert graph["nodes"][0]["shape"] == "diamond"

    text = client.post("/api/convert/to-text", json={"graph": graph}).json()["text"]
    assert text == "graph TD\n  A{Go?}\n"
    assert client.get("/api/diagram").json()["version"] == 0


def test_websocket_receives_published_text(client):
    _load(client)
    with client.websocket_connect("/ws") as ws:
        ws.send_text("ping")
        assert ws.receive_json() == {"type": "pong"}

        client.post("/api/edges", json={"source": "B", "target": "A"})
        message = ws.receive_json()
        assert message["type"] == "text_published"
        assert "B --> A" in message["text"]
        assert message["revision"] == 2
        assert "version" not in message


def test_websocket_text_changed_feeds_controller(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "text_changed", "text": FLOW})
        message = ws.receive_json()
        assert message == {"type": "graph_replaced", "version": 1, "revision": 1}


def test_saved_sequence_diagram_reloads_with_its_own_dialect(scheduler, tmp_path):
    path = tmp_path / "diagram.mmd"
    path.write_text(
        "sequenceDiagram\n  participant C as Client\n  participant S as Server\n  C->>S: hi\n",
        encoding="utf-8",
    )
    settings = Settings(default_dialect="flowchart", autosave_path=path)

    with TestClient(create_app(settings, scheduler=scheduler)) as client:
        state = client.get("/api/diagram").json()
        assert state["dialect"] == "sequence"
        assert [n["id"] for n in state["graph"]["nodes"]] == ["C", "S"]
        assert client.post("/api/nodes", json={"id": "Z"}).status_code == 200

    assert path.read_text(encoding="utf-8") == (
        "sequenceDiagram\n"
        "  participant C as Client\n"
        "  participant S as Server\n"
        "  participant Z as New Node\n"
        "  C->>S: hi\n"
    )
