#!/usr/bin/env python3
"""
REST API tests using FastAPI's TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from keystroke_histogram.api import create_api


@pytest.fixture
def client(controller):
    return TestClient(create_api(controller))


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["histogram_ready"] is True


def test_keystrokes_then_report(client):
    response = client.post("/api/keystrokes", json={"text": "hi hi "})
    assert response.status_code == 200
    assert response.json() == {"typed": 6}

    response = client.get("/api/histogram")
    assert response.status_code == 200
    assert response.text == "hi: 2\n"


def test_status(client):
    client.post("/api/keystrokes", json={"text": "a b a "})
    stats = client.get("/api/status").json()
    assert stats["distinct_words"] == 2
    assert stats["total_words"] == 3
    assert stats["buckets"] == 128


def test_word_count(client, controller):
    client.post("/api/keystrokes", json={"text": "cat cat dog "})
    body = client.get("/api/words/cat").json()
    assert body["count"] == 2
    assert body["bucket"] == controller.table.bucket_index("cat")
    assert client.get("/api/words/bird").json()["count"] == 0


def test_word_count_rejects_non_latin1(client):
    assert client.get("/api/words/\u20ac").status_code == 400


def test_session_flow(client):
    client.post("/api/keystrokes", json={"text": "hello "})

    response = client.post("/api/histogram/session")
    assert response.status_code == 200
    assert response.json()["length"] == len("hello: 1\n")

    assert client.post("/api/histogram/session").status_code == 409
    assert client.get("/api/histogram").status_code == 409

    response = client.get("/api/histogram/session", params={"offset": 0, "length": 5})
    assert response.text == "hello"
    assert response.headers["X-Bytes-Read"] == "5"

    response = client.get("/api/histogram/session", params={"offset": 100, "length": 5})
    assert response.text == ""
    assert response.headers["X-Bytes-Read"] == "0"

    assert client.delete("/api/histogram/session").status_code == 200
    assert client.delete("/api/histogram/session").status_code == 404
    assert client.get("/api/histogram/session").status_code == 404


def test_negative_offset_rejected(client):
    client.post("/api/histogram/session")
    assert client.get("/api/histogram/session", params={"offset": -1}).status_code == 422


def test_not_initialized(controller):
    controller.teardown()
    client = TestClient(create_api(controller))
    assert client.get("/api/histogram").status_code == 503
    assert client.post("/api/keystrokes", json={"text": "x "}).status_code == 503
    assert client.get("/api/health").json()["histogram_ready"] is False
    assert client.get("/api/words/x").status_code == 503
