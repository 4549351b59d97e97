"""HTTP-level tests for the whole-text rewrite endpoints."""

import pytest

from app.core.exceptions import ProviderTransportError
from app.models.model_config import Provider

OLLAMA = {"provider": "ollama", "model": "gemma3:1b"}
TEXT = "We acknowledge receipt of your message."


@pytest.mark.asyncio
class TestEnhanceEndpoints:
    async def test_full_text(self, client, clients):
        clients[Provider.ollama].reply = (
            "**ENHANCED TEXT:**\nThanks, we got your message.\n\n"
            "**IMPROVEMENT SUMMARY:**\n**Tone:** Warmer."
        )
        response = await client.post(
            "/api/v1/enhance/full-text",
            json={"text": TEXT, "enhancementType": "casual", "modelConfig": OLLAMA},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["errors"] == []
        assert body["meta"]["request_id"] == response.headers["X-Request-ID"]
        data = body["data"]
        assert data["enhancedText"] == "Thanks, we got your message."
        assert data["improvementSummary"] == "**Tone:** Warmer."
        assert data["enhancementType"] == "casual"
        assert data["metrics"]["wordCountChange"] == -1

    async def test_full_text_default_type(self, client, clients):
        clients[Provider.ollama].reply = "ENHANCED TEXT:\nBetter."
        response = await client.post("/api/v1/enhance/full-text", json={"text": TEXT, "modelConfig": OLLAMA})
        assert response.json()["data"]["enhancementType"] == "comprehensive"

    async def test_humanize(self, client, clients):
        clients[Provider.ollama].reply = "Got your message, thanks!"
        response = await client.post(
            "/api/v1/enhance/humanize",
            json={"text": TEXT, "tone": "friendly", "strength": "medium", "modelConfig": OLLAMA},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["original"] == TEXT
        assert data["humanized"] == "Got your message, thanks!"
        assert data["originalLength"] == len(TEXT)
        assert data["newLength"] == len("Got your message, thanks!")

    async def test_humanize_invalid_tone(self, client, clients):
        response = await client.post(
            "/api/v1/enhance/humanize",
            json={"text": TEXT, "tone": "sarcastic", "strength": "medium", "modelConfig": OLLAMA},
        )
        assert response.status_code == 422
        body = response.json()
        assert body["status"] == "error"
        assert body["errors"][0]["code"] == "VALIDATION_ERROR"
        assert body["errors"][0]["field"] == "tone"
        assert clients[Provider.ollama].requests == []

    async def test_humanize_requires_strength(self, client):
        response = await client.post(
            "/api/v1/enhance/humanize", json={"text": TEXT, "tone": "neutral"}
        )
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "strength"

    async def test_simplify(self, client, clients):
        clients[Provider.ollama].reply = "We got your note."
        response = await client.post(
            "/api/v1/enhance/simplify",
            json={"text": TEXT, "targetGrade": 4, "modelConfig": OLLAMA},
        )
        assert response.status_code == 200
        assert response.json()["data"]["simplified"] == "We got your note."
        assert "grade 4 reading level" in clients[Provider.ollama].requests[0].messages[0].content

    @pytest.mark.parametrize("grade", [0, 21, "5", True])
    async def test_simplify_invalid_grade(self, client, grade):
        response = await client.post(
            "/api/v1/enhance/simplify", json={"text": TEXT, "targetGrade": grade}
        )
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "targetGrade"

    async def test_expand(self, client, clients):
        clients[Provider.ollama].reply = "We acknowledge receipt of your message and will reply soon."
        response = await client.post(
            "/api/v1/enhance/expand",
            json={"text": TEXT, "targetLength": "short", "modelConfig": OLLAMA},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["expanded"].endswith("will reply soon.")
        assert data["targetLength"] == "short"

    async def test_expand_rejects_condense_target(self, client):
        response = await client.post(
            "/api/v1/enhance/expand", json={"text": TEXT, "targetLength": "summary"}
        )
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "targetLength"

    async def test_condense(self, client, clients):
        clients[Provider.ollama].reply = "Message received."
        response = await client.post(
            "/api/v1/enhance/condense",
            json={"text": TEXT, "targetLength": "summary", "modelConfig": OLLAMA},
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["condensed"] == "Message received."
        assert data["compressionRatio"] == round(17 / len(TEXT), 2)

    async def test_user_api_key(self, client, clients):
        response = await client.post(
            "/api/v1/enhance/condense",
            json={"text": TEXT, "modelConfig": {"provider": "openai"}, "userApiKey": "sk-user"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["provider"] == "openai"
        assert clients[Provider.openai].requests[0].api_key == "sk-user"

    async def test_blank_text(self, client, clients):
        response = await client.post(
            "/api/v1/enhance/simplify", json={"text": "  ", "modelConfig": OLLAMA}
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "EMPTY_INPUT"
        assert clients[Provider.ollama].requests == []

    async def test_missing_credential(self, client):
        response = await client.post(
            "/api/v1/enhance/expand", json={"text": TEXT, "modelConfig": {"provider": "groq"}}
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["code"] == "MISSING_CREDENTIAL"

    async def test_empty_model_reply(self, client, clients):
        clients[Provider.ollama].reply = "   "
        response = await client.post(
            "/api/v1/enhance/humanize",
            json={"text": TEXT, "tone": "neutral", "strength": "light", "modelConfig": OLLAMA},
        )
        assert response.status_code == 502
        assert response.json()["errors"][0]["code"] == "PROVIDER_ERROR"

    async def test_provider_timeout(self, client, clients):
        clients[Provider.ollama].errors = [ProviderTransportError("ollama", "slow", timed_out=True)]
        response = await client.post(
            "/api/v1/enhance/full-text", json={"text": TEXT, "modelConfig": OLLAMA}
        )
        assert response.status_code == 504
        assert response.json()["errors"][0]["code"] == "PROVIDER_TIMEOUT"
