from fastapi.testclient import TestClient
from backend.app import main

client = TestClient(main.app)


def test_api_step_limit_through_trace(monkeypatch):
    # the client asks for far more steps than the server allows
    monkeypatch.setattr(main.interpreter, "max_steps", 5)
    payload = {"code": "while True:\n    x = 1", "settings": {"max_steps": 1000000}}
    r = client.post("/trace", json=payload)
    assert r.status_code == 200
    body = r.json()
    assert len(body["steps"]) == 5
    assert body["truncated"] is True
    assert body["errors"] is None


def test_api_output_limit_through_trace(monkeypatch):
    monkeypatch.setattr(main.interpreter, "max_output_chars", 10)
    code = "\n".join(['print("abcdefghij")'] * 100)
    payload = {"code": code, "settings": {"max_output_chars": 1000000}}
    body = client.post("/trace", json=payload).json()
    assert body["truncated"] is True
    assert body["output"] == ["abcdefghij"]


def test_client_may_lower_limits():
    payload = {"code": "\n".join(["print(1)"] * 10), "settings": {"max_steps": 2}}
    body = client.post("/trace", json=payload).json()
    assert len(body["steps"]) == 2


def test_bad_settings_give_server_error():
    body = client.post("/trace", json={"code": "x = 1", "settings": {"max_steps": "lots"}}).json()
    assert body["errors"]["code"] == "SERVER_ERROR"
    assert body["steps"] == []


def test_non_positive_step_limit_is_raised_to_one():
    body = client.post("/trace", json={"code": "x = 1\ny = 2", "settings": {"max_steps": -1}}).json()
    assert len(body["steps"]) == 1
    assert body["truncated"] is True
