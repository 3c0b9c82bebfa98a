"""
HTTP endpoint tests using Flask's test client.
"""

import pytest
from flask import Flask

from server.http_server import HTTPServerError, create_app, start_server


@pytest.fixture
def client(recording_tts):
    app = create_app(recording_tts)
    app.testing = True
    return app.test_client()


class TestTtsEndpoint:
    def test_json_request_speaks_once(self, client, recording_tts):
        response = client.post("/tts", json={"text": "hello"})

        assert response.status_code == 200
        assert response.get_json() == {"status": "success", "msg": "Lectura iniciada"}
        assert recording_tts.spoken == ["hello"]

    def test_json_with_charset(self, client, recording_tts):
        response = client.post(
            "/tts",
            data='{"text": "  con charset  "}',
            content_type="application/json; charset=utf-8",
        )

        assert response.status_code == 200
        assert recording_tts.spoken == ["con charset"]

    def test_form_request(self, client, recording_tts):
        response = client.post("/tts", data={"text": "from a form"})

        assert response.status_code == 200
        assert recording_tts.spoken == ["from a form"]

    def test_get_is_not_allowed(self, client, recording_tts):
        response = client.get("/tts")

        assert response.status_code == 405
        assert response.headers["Content-Type"].startswith("text/plain")
        assert recording_tts.spoken == []

    def test_put_is_not_allowed(self, client):
        assert client.put("/tts", json={"text": "hello"}).status_code == 405

    def test_options_is_not_allowed(self, client, recording_tts):
        response = client.open("/tts", method="OPTIONS")

        assert response.status_code == 405
        assert response.headers["Allow"] == "POST"
        assert recording_tts.spoken == []

    def test_head_is_not_allowed(self, client, recording_tts):
        response = client.head("/tts")

        assert response.status_code == 405
        assert recording_tts.spoken == []

    def test_unsupported_content_type(self, client, recording_tts):
        response = client.post("/tts", data="hello", content_type="text/plain")

        assert response.status_code == 415
        assert recording_tts.spoken == []

    @pytest.mark.parametrize("body", [
        {"text": ""},
        {"text": "   "},
        {},
        {"text": None},
        {"text": "a" * 501},
        {"text": 12},
    ])
    def test_bad_json_text(self, client, recording_tts, body):
        response = client.post("/tts", json=body)

        assert response.status_code == 400
        assert recording_tts.spoken == []

    def test_malformed_json(self, client, recording_tts):
        response = client.post("/tts", data="{text:", content_type="application/json")

        assert response.status_code == 400
        assert recording_tts.spoken == []

    def test_json_array_body(self, client):
        response = client.post("/tts", data='["hello"]', content_type="application/json")

        assert response.status_code == 400

    def test_empty_form_field(self, client, recording_tts):
        response = client.post("/tts", data={"text": ""})

        assert response.status_code == 400
        assert recording_tts.spoken == []

    def test_max_length_is_accepted(self, client, recording_tts):
        response = client.post("/tts", json={"text": "b" * 500})

        assert response.status_code == 200
        assert recording_tts.spoken == ["b" * 500]

    def test_backend_failure_returns_500(self, failing_tts):
        client = create_app(failing_tts).test_client()

        response = client.post("/tts", json={"text": "hello"})

        assert response.status_code == 500
        assert failing_tts.calls == 1
        assert response.headers["Content-Type"].startswith("text/plain")


class TestStartServer:
    @pytest.mark.parametrize("failure", [
        OSError(98, "Address already in use"),
        SystemExit(1),
    ])
    def test_bind_failure_raises(self, monkeypatch, recording_tts, failure):
        def fake_run(self, **kwargs):
            raise failure

        monkeypatch.setattr(Flask, "run", fake_run)

        with pytest.raises(HTTPServerError, match="127.0.0.1:5555"):
            start_server(recording_tts, host="127.0.0.1", port=5555)
