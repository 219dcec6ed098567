import pytest
from starlette.testclient import TestClient

from slagboom import __version__, make_app
from slagboom.config import GateConfig, MainConfig
from slagboom.skiplist import SkipList

from conftest import RecordingVerifier


@pytest.fixture
def client(alice_hash):
    return TestClient(make_app(MainConfig(accounts={"alice": alice_hash})))


AUTH = ("alice", "secret")


def test_ping_skipped(client):
    response = client.get("/_ping")
    assert response.status_code == 200
    assert response.json() == {"app": "Slagboom", "version": __version__, "user": None}


def test_ping_head(client):
    assert client.head("/_ping").status_code == 200


def test_whoami_requires_auth(client):
    response = client.get("/_whoami")
    assert response.status_code == 401
    assert response.json() == {"code": 401, "detail": "Authentication required"}
    assert response.headers["WWW-Authenticate"] == 'Basic realm="Slagboom"'


def test_whoami_wrong_password(client):
    assert client.get("/_whoami", auth=("alice", "wrong")).status_code == 401


def test_whoami(client):
    response = client.get("/_whoami", auth=AUTH)
    assert response.status_code == 200
    assert response.json() == {"user": "alice", "header": "alice"}


def test_not_found_is_json(client):
    assert client.get("/nope").status_code == 401
    response = client.get("/nope", auth=AUTH)
    assert response.status_code == 404
    assert response.json()["code"] == 404


def test_method_not_allowed_is_json(client):
    response = client.patch("/_skip", auth=AUTH)
    assert response.status_code == 405
    assert response.json()["code"] == 405


def test_skip_list_shown(client):
    response = client.get("/_skip", auth=AUTH)
    assert response.json() == {"count": 1, "items": ["/_ping"]}


def test_skip_list_add_and_remove(client):
    response = client.post("/_skip", params={"pattern": "/_whoami"}, auth=AUTH)
    assert response.status_code == 201
    assert response.json()["items"] == ["/_ping", "/_whoami"]

    response = client.get("/_whoami")
    assert response.status_code == 200
    assert response.json() == {"user": None, "header": None}

    response = client.delete("/_skip", params={"pattern": "/_whoami"}, auth=AUTH)
    assert response.json()["items"] == ["/_ping"]
    assert client.get("/_whoami").status_code == 401


def test_skip_list_add_without_pattern(client):
    response = client.post("/_skip", auth=AUTH)
    assert response.status_code == 400
    assert response.json() == {"code": 400, "detail": "Pattern missing"}


def test_skip_list_erase(client):
    response = client.delete("/_skip", auth=AUTH)
    assert response.json() == {"count": 0, "items": []}
    assert client.get("/_ping").status_code == 401
    assert client.get("/_ping", auth=AUTH).json()["user"] == "alice"


def test_skip_list_replace(client):
    response = client.put("/_skip", json=["/_ping", "/_whoami"], auth=AUTH)
    assert response.json()["items"] == ["/_ping", "/_whoami"]
    assert client.get("/_whoami").status_code == 200


@pytest.mark.parametrize("body", [{"/_whoami": True}, "/_whoami", 3])
def test_skip_list_replace_ignores_non_list(client, body):
    response = client.put("/_skip", json=body, auth=AUTH)
    assert response.status_code == 200
    assert response.json()["items"] == ["/_ping"]


def test_skip_list_replace_invalid_json(client):
    response = client.put("/_skip", content=b"[not json", auth=AUTH)
    assert response.status_code == 400


def test_gate_config():
    config = MainConfig(gate=GateConfig(realm="Back office", skip=[], publish_headers=False))
    client = TestClient(make_app(config, verifier=RecordingVerifier({"id": 1})))

    response = client.get("/_ping")
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == 'Basic realm="Back office"'

    response = client.get("/_whoami", auth=("anyone", "anything"))
    assert response.json() == {"user": '{"id":1}', "header": None}


def test_app_exposes_skip_list():
    app = make_app()
    assert isinstance(app.state.skip, SkipList)
    app.state.skip.add("/_whoami")
    assert TestClient(app).get("/_whoami").status_code == 200


def test_no_accounts_refuses_everyone():
    client = TestClient(make_app())
    assert client.get("/_whoami", auth=AUTH).status_code == 401


@pytest.mark.parametrize("body", [[1], ["/_whoami", None], [["/_whoami"]]])
def test_skip_list_replace_ignores_non_string_items(client, body):
    response = client.put("/_skip", json=body, auth=AUTH)
    assert response.status_code == 200
    assert response.json()["items"] == ["/_ping"]

    assert client.get("/_ping").status_code == 200
    assert client.get("/_skip", auth=AUTH).status_code == 200
    assert client.get("/_whoami").status_code == 401
