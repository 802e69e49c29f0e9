"""Tests for the HTTP surface of the gateway."""

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from conftest import GROQ_URL, completion
from guardian.app.api.ai import dispatcher_dependency
from guardian.app.core.config import settings
from guardian.app.main import create_app
from guardian.app.services.dispatcher import API_KEY_OPTION
from guardian.app.services.quota import COUNTER_OPTION, PREMIUM_OPTION, RESET_DATE_OPTION
from guardian.app.services.results import FALLBACK_PAYLOAD

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def client(monkeypatch, dispatcher):
    monkeypatch.setattr(settings, "admin_token", ADMIN_TOKEN)
    app = create_app()
    app.dependency_overrides[dispatcher_dependency] = lambda: dispatcher
    return TestClient(app)


class TestAuth:
    def test_missing_token(self, client):
        resp = client.post("/wpaig/v1/ai-generate", json={"prompt": "hi"})
        assert resp.status_code == 401
        assert resp.json()["success"] is False

    def test_wrong_token(self, client):
        resp = client.get("/wpaig/v1/ai-usage", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_unconfigured_token_rejects_everything(self, client, monkeypatch, auth_headers):
        monkeypatch.setattr(settings, "admin_token", "   ")
        resp = client.get("/wpaig/v1/ai-usage", headers=auth_headers)
        assert resp.status_code == 401
        assert resp.json()["message"] == "Admin token not configured"


class TestGenerate:
    def test_success(self, client, auth_headers, options):
        options._data[API_KEY_OPTION] = "gsk_XXXX"

        with respx.mock(assert_all_called=False) as mock:
            mock.post(GROQ_URL).mock(return_value=httpx.Response(200, json=completion("pong")))
            resp = client.post(
                "/wpaig/v1/ai-generate",
                json={"prompt": "ping", "max_calls": 3},
                headers=auth_headers,
            )

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "kind": "success",
            "response": "pong",
            "cached": False,
            "calls_remaining": 2,
            "is_premium": False,
        }

    def test_fallback(self, client, auth_headers):
        resp = client.post("/wpaig/v1/ai-generate", json={"prompt": "ping"}, headers=auth_headers)

        data = resp.json()
        assert resp.status_code == 200
        assert data["kind"] == "fallback"
        assert data["response"] == FALLBACK_PAYLOAD

    def test_quota_exceeded(self, client, auth_headers, options, clock):
        options._data.update({
            API_KEY_OPTION: "gsk_XXXX",
            COUNTER_OPTION: 3,
            RESET_DATE_OPTION: clock.today().isoformat(),
        })

        resp = client.post("/wpaig/v1/ai-generate", json={"prompt": "ping"}, headers=auth_headers)

        data = resp.json()
        assert data["kind"] == "quota_exceeded"
        assert data["response"].startswith("Upgrade for more AI")
        assert data["calls_remaining"] == 0

    def test_premium_reports_unlimited(self, client, auth_headers, options):
        options._data.update({API_KEY_OPTION: "gsk_XXXX", PREMIUM_OPTION: True})

        with respx.mock(assert_all_called=False) as mock:
            mock.post(GROQ_URL).mock(return_value=httpx.Response(200, json=completion()))
            resp = client.post("/wpaig/v1/ai-generate", json={"prompt": "ping"}, headers=auth_headers)

        assert resp.json()["calls_remaining"] == "unlimited"
        assert resp.json()["is_premium"] is True

    @pytest.mark.parametrize("body", [{"prompt": ""}, {"prompt": "   "}, {}])
    def test_empty_prompt_is_400(self, client, auth_headers, body):
        resp = client.post("/wpaig/v1/ai-generate", json=body, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Prompt is required"

    def test_negative_max_calls_is_422(self, client, auth_headers):
        resp = client.post(
            "/wpaig/v1/ai-generate", json={"prompt": "hi", "max_calls": -1}, headers=auth_headers
        )
        assert resp.status_code == 422


class TestUsageAndReset:
    def test_usage(self, client, auth_headers, options, clock):
        options._data.update({COUNTER_OPTION: 2, RESET_DATE_OPTION: clock.today().isoformat()})

        resp = client.get("/wpaig/v1/ai-usage", headers=auth_headers)

        assert resp.json() == {
            "calls_today": 2,
            "last_reset_date": "2026-10-18",
            "is_premium": False,
            "next_reset_date": "2026-10-19",
        }

    def test_reset(self, client, auth_headers, options, clock):
        options._data.update({COUNTER_OPTION: 3, RESET_DATE_OPTION: clock.today().isoformat()})

        resp = client.post("/wpaig/v1/ai-reset", headers=auth_headers)

        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.json()["calls_today"] == 0
        assert options._data[COUNTER_OPTION] == 0

    def test_connection(self, client, auth_headers, options):
        options._data[API_KEY_OPTION] = "pplx-abc"

        with respx.mock(assert_all_called=False) as mock:
            mock.post("https://api.perplexity.ai/chat/completions").mock(
                return_value=httpx.Response(200, json=completion("Connection successful"))
            )
            resp = client.post("/wpaig/v1/ai-test-connection", headers=auth_headers)

        data = resp.json()
        assert data["success"] is True
        assert data["provider"] == "perplexity"
        assert COUNTER_OPTION not in options._data


class TestAiSettings:
    def test_store_key_reports_provider(self, client, auth_headers, options):
        resp = client.post(
            "/wpaig/v1/ai-settings", json={"api_key": "  pplx-abc  "}, headers=auth_headers
        )

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "configured": True, "provider": "perplexity"}
        assert options._data[API_KEY_OPTION] == "pplx-abc"

    def test_unrecognised_key_reports_default_provider(self, client, auth_headers):
        resp = client.post("/wpaig/v1/ai-settings", json={"api_key": "abc123"}, headers=auth_headers)
        assert resp.json()["provider"] == "groq"

    @pytest.mark.parametrize("body", [{"api_key": ""}, {"api_key": "   "}, {}])
    def test_blank_key_is_422(self, client, auth_headers, options, body):
        resp = client.post("/wpaig/v1/ai-settings", json=body, headers=auth_headers)

        assert resp.status_code == 422
        assert API_KEY_OPTION not in options._data

    def test_requires_admin_token(self, client, options):
        resp = client.post("/wpaig/v1/ai-settings", json={"api_key": "gsk_1"})

        assert resp.status_code == 401
        assert API_KEY_OPTION not in options._data

    def test_status_masks_key(self, client, auth_headers, options):
        options._data[API_KEY_OPTION] = "gsk_1234567890abcdef"

        data = client.get("/wpaig/v1/ai-settings", headers=auth_headers).json()

        assert data == {
            "configured": True,
            "provider": "groq",
            "key_preview": "gsk_1234...",
            "key_length": 20,
            "is_premium": False,
        }

    def test_status_unconfigured(self, client, auth_headers):
        data = client.get("/wpaig/v1/ai-settings", headers=auth_headers).json()

        assert data["configured"] is False
        assert data["provider"] is None
        assert data["key_preview"] is None

    def test_clear_key(self, client, auth_headers, options):
        options._data[API_KEY_OPTION] = "gsk_1"

        resp = client.delete("/wpaig/v1/ai-settings", headers=auth_headers)

        assert resp.json() == {"success": True, "configured": False}
        assert API_KEY_OPTION not in options._data

    def test_stored_key_used_for_generate(self, client, auth_headers):
        client.post("/wpaig/v1/ai-settings", json={"api_key": "pplx-abc"}, headers=auth_headers)

        with respx.mock(assert_all_called=False) as mock:
            route = mock.post("https://api.perplexity.ai/chat/completions").mock(
                return_value=httpx.Response(200, json=completion("pong"))
            )
            resp = client.post("/wpaig/v1/ai-generate", json={"prompt": "ping"}, headers=auth_headers)

        assert resp.json()["response"] == "pong"
        assert route.calls.last.request.headers["Authorization"] == "Bearer pplx-abc"


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["components"]["cache"]["status"] == "ok"
    assert data["components"]["options"]["status"] == "ok"
