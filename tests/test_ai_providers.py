"""
Tests for LLM provider selection
"""
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from google.genai import errors

import ai_providers
import config
from errors import UpstreamServiceError


def ollama_response(text="hello", status=200):
    return httpx.Response(status, json={"response": text},
                          request=httpx.Request("POST", "http://ollama.test/api/generate"))


class TestClampMaxTokens:

    @pytest.mark.parametrize("value,expected", [
        (None, 512), ("100", 512), (True, 512), (5, 16), (100, 100), (99999, 2048), (300.7, 300),
    ])
    def test_clamp(self, value, expected):
        assert ai_providers.clamp_max_tokens(value) == expected


class TestGenerateText:

    @pytest.mark.asyncio
    async def test_ollama_used_without_gemini_key(self, monkeypatch):
        monkeypatch.setattr(config, "GEMINI_API_KEY", None)
        with patch("ai_providers.request_with_retry", AsyncMock(return_value=ollama_response("hi"))) as call:
            text = await ai_providers.generate_text("Say hi", max_tokens=4000)

        assert text == "hi"
        payload = call.call_args.kwargs["json"]
        assert payload["stream"] is False
        assert payload["options"] == {"temperature": 0.2, "num_predict": 2048}
        assert payload["system"] == ai_providers.DEFAULT_SYSTEM_INSTRUCTION

    @pytest.mark.asyncio
    async def test_falls_back_to_ollama_when_gemini_fails(self, monkeypatch):
        monkeypatch.setattr(config, "GEMINI_API_KEY", "key")
        gemini = AsyncMock(side_effect=UpstreamServiceError("Gemini", "no models"))
        with patch("ai_providers._generate_gemini", gemini), \
                patch("ai_providers.request_with_retry", AsyncMock(return_value=ollama_response("local"))):
            text = await ai_providers.generate_text("prompt")

        assert text == "local"
        gemini.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_gemini_walks_model_candidates(self, monkeypatch):
        monkeypatch.setattr(config, "GEMINI_API_KEY", "key")
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(side_effect=[
            errors.ClientError(404, {"error": {"message": "not found", "status": "NOT_FOUND"}}),
            MagicMock(text="from gemini"),
        ])
        with patch("ai_providers.genai.Client", return_value=client):
            text = await ai_providers.generate_text("prompt", system_instruction="be brief")

        assert text == "from gemini"
        models = [c.kwargs["model"] for c in client.aio.models.generate_content.call_args_list]
        assert models == ai_providers.MODEL_CANDIDATES[:2]

    @pytest.mark.asyncio
    async def test_ollama_error_status(self, monkeypatch):
        monkeypatch.setattr(config, "GEMINI_API_KEY", None)
        with patch("ai_providers.request_with_retry", AsyncMock(return_value=ollama_response(status=500))):
            with pytest.raises(UpstreamServiceError, match="Ollama error"):
                await ai_providers.generate_text("prompt")
