"""Tests for the HTTP and WebSocket surface of the hub."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from relayhub.config import HubSettings
from relayhub.server import create_app


@pytest.fixture()
def client():
    with TestClient(create_app(HubSettings())) as c:
        yield c


def _frame(event, data=None):
    return {"event": event, "data": data if data is not None else {}}


def _register_device(ws, name=None):
    data = {"as": "device"}
    if name:
        data["displayName"] = name
    ws.send_json(_frame("register", data))
    reply = ws.receive_json()
    assert reply["event"] == "register"
    assert reply["data"]["status"] == "success"
    return reply["data"]["id"]


class TestHTTP:
    def test_index(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "Relay Hub is Running" in resp.text

    def test_health_empty(self, client):
        assert client.get("/health").json() == {
            "status": "ok",
            "connections": 0,
            "devices": 0,
            "controllers": 0,
        }

    def test_health_counts_live_endpoints(self, client):
        with client.websocket_connect("/ws") as dev:
            _register_device(dev)
            with client.websocket_connect("/ws") as pc:
                pc.send_json(_frame("register", {"as": "controller"}))
                pc.receive_json()
                body = client.get("/health").json()
                assert body["connections"] == 2
                assert body["devices"] == 1
                assert body["controllers"] == 1

    def test_separate_apps_do_not_share_registry(self):
        with TestClient(create_app()) as first, TestClient(create_app()) as second:
            with first.websocket_connect("/ws") as dev:
                _register_device(dev)
                assert first.get("/health").json()["devices"] == 1
                assert second.get("/health").json()["devices"] == 0

    def test_custom_ws_path(self):
        with TestClient(create_app(HubSettings(ws_path="/socket"))) as c:
            with c.websocket_connect("/socket") as dev:
                assert _register_device(dev)


class TestWebSocketRelay:
    def test_full_relay_scenario(self, client):
        with client.websocket_connect("/ws") as dev:
            dev_id = _register_device(dev, "Pixel7")

            with client.websocket_connect("/ws") as pc:
                pc.send_json(_frame("register", {"as": "controller"}))
                assert pc.receive_json() == _frame("register", {"status": "success"})
                assert pc.receive_json() == _frame(
                    "deviceList", {"devices": [{"id": dev_id, "displayName": "Pixel7"}]},
                )

                pc.send_json(_frame("selectTarget", {"targetId": dev_id}))
                assert pc.receive_json() == _frame("selectionChanged", {"selectedId": dev_id})

                pc.send_json(_frame("relayCommand", {"type": "tap", "x": 10, "y": 20}))
                assert dev.receive_json() == _frame("command", {"type": "tap", "x": 10, "y": 20})

    def test_device_disconnect_updates_roster_and_dangles(self, client):
        with client.websocket_connect("/ws") as pc:
            pc.send_json(_frame("register", {"as": "controller"}))
            pc.receive_json()
            assert pc.receive_json() == _frame("deviceList", {"devices": []})

            with client.websocket_connect("/ws") as dev:
                dev_id = _register_device(dev)
                assert pc.receive_json() == _frame(
                    "deviceList", {"devices": [{"id": dev_id, "displayName": "Unnamed Device"}]},
                )
                pc.send_json(_frame("selectTarget", {"targetId": dev_id}))
                pc.receive_json()

            assert pc.receive_json() == _frame("deviceList", {"devices": []})

            pc.send_json(_frame("relayCommand", {"type": "tap"}))
            assert pc.receive_json() == _frame("error", {"message": "target gone"})

    def test_malformed_frames_keep_connection_open(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            ws.send_text(json.dumps([1, 2, 3]))
            ws.send_json({"data": {"as": "device"}})
            ws.send_json(_frame("register", {"as": "robot"}))
            ws.send_json(_frame("teardown"))
            assert _register_device(ws)

    def test_bad_frames_after_registration_keep_device_bound(self, client):
        with client.websocket_connect("/ws") as pc:
            pc.send_json(_frame("register", {"as": "controller"}))
            pc.receive_json()
            pc.receive_json()

            with client.websocket_connect("/ws") as dev:
                dev_id = _register_device(dev, "Pixel7")
                pc.receive_json()
                pc.send_json(_frame("selectTarget", {"targetId": dev_id}))
                assert pc.receive_json() == _frame("selectionChanged", {"selectedId": dev_id})

                dev.send_bytes(b"\x00\x01")
                dev.send_text("[" * 200000)
                dev.send_text(json.dumps([1, 2, 3]))
                # A reply on the same connection shows the bad frames were consumed
                dev.send_json(_frame("relayCommand", {"type": "tap"}))
                assert dev.receive_json() == _frame("error", {"message": "no target selected"})

                body = client.get("/health").json()
                assert body["connections"] == 2
                assert body["devices"] == 1

                pc.send_json(_frame("relayCommand", {"type": "tap", "x": 1, "y": 2}))
                assert dev.receive_json() == _frame("command", {"type": "tap", "x": 1, "y": 2})

    def test_misuse_reports_error_to_caller(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json(_frame("relayCommand", {"type": "tap"}))
            assert ws.receive_json() == _frame("error", {"message": "no target selected"})
