import json

import httpx
import pytest

from contentflow.errors import AIServiceError
from contentflow.llm_client import LLMClient, _sanitize_llm_text


def _client(handler, **kwargs):
    kwargs.setdefault("retry_delay", 0)
    return LLMClient("http://ollama.test", "llama3.1:8b", transport=httpx.MockTransport(handler), **kwargs)


def test_sanitize_unwraps_code_fence():
    assert _sanitize_llm_text("```text\n1. A\n2. B\n```") == "1. A\n2. B"


def test_sanitize_unwraps_quotes():
    assert _sanitize_llm_text('  "1. Only"  ') == "1. Only"
    assert _sanitize_llm_text("") == ""


async def test_generate_posts_payload():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "1. On-Page SEO"})

    out = await _client(handler).generate("prompt", "mistral", temperature=0.3, max_tokens=50)

    assert out == "1. On-Page SEO"
    assert seen["url"] == "http://ollama.test/api/generate"
    assert seen["body"]["model"] == "mistral"
    assert seen["body"]["stream"] is False
    assert seen["body"]["options"] == {"temperature": 0.3, "num_predict": 50}


async def test_generate_uses_default_model():
    def handler(request):
        assert json.loads(request.content)["model"] == "llama3.1:8b"
        return httpx.Response(200, json={"response": "ok"})

    assert await _client(handler).generate("p") == "ok"


async def test_generate_retries_then_succeeds():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        if calls["n"] < 3:
            return httpx.Response(503, json={"error": "loading model"})
        return httpx.Response(200, json={"response": "1. Done"})

    assert await _client(handler, max_retries=3).generate("p") == "1. Done"
    assert calls["n"] == 3


async def test_generate_gives_up_with_ai_service_error():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        return httpx.Response(500, text="boom")

    with pytest.raises(AIServiceError) as exc:
        await _client(handler, max_retries=2).generate("p")
    assert calls["n"] == 2
    assert exc.value.client_message == "AI service encountered an error"
    assert "Ollama request failed" in exc.value.message


async def test_empty_response_is_an_error():
    def handler(request):
        return httpx.Response(200, json={"response": "   "})

    with pytest.raises(AIServiceError, match="Empty response"):
        await _client(handler, max_retries=1).generate("p")
