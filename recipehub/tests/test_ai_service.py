import asyncio

import pytest
from openai import OpenAIError

from recipehub.core.errors import UpstreamProviderError
from recipehub.features.ai import service as ai


def test_recipe_request_shape(fake_openai, test_settings):
    result = asyncio.run(ai.generate_recipe(["rice", "egg"], ["vegetarian"], "japanese"))
    assert result["title"] == "Garlic Tomato Pasta"

    call = fake_openai.calls[0]
    assert call["model"] == test_settings.OPENAI_MODEL
    assert call["messages"][0]["role"] == "system"
    prompt = call["messages"][1]["content"]
    assert "rice, egg" in prompt
    assert "vegetarian" in prompt
    assert "japanese" in prompt


def test_chat_uses_chat_model_and_plain_text(fake_openai, test_settings):
    fake_openai.reply("Add a pinch of salt.")
    reply = asyncio.run(ai.chat_reply("How salty?"))
    assert reply == "Add a pinch of salt."
    assert fake_openai.calls[0]["model"] == test_settings.OPENAI_CHAT_MODEL


def test_provider_error_becomes_upstream_error(fake_openai):
    fake_openai.fail(OpenAIError("connection reset"))
    with pytest.raises(UpstreamProviderError, match="Failed to analyze nutrition"):
        asyncio.run(ai.analyze_nutrition({"title": "Soup"}))


@pytest.mark.parametrize("content", ["", "not json", "[1, 2, 3]"])
def test_bad_output_is_upstream_error(fake_openai, content):
    fake_openai.reply(content)
    with pytest.raises(UpstreamProviderError):
        asyncio.run(ai.suggest_substitutions("butter"))


def test_client_is_closed_after_each_call(fake_openai):
    asyncio.run(ai.generate_recipe(["rice"]))
    fake_openai.fail(OpenAIError("boom"))
    with pytest.raises(UpstreamProviderError):
        asyncio.run(ai.generate_recipe(["rice"]))
    assert fake_openai.opened == 2
    assert fake_openai.closed == 2


def test_missing_api_key(monkeypatch, test_settings):
    monkeypatch.setattr(test_settings, "OPENAI_API_KEY", None)
    with pytest.raises(UpstreamProviderError):
        ai.get_client()


def test_client_is_bounded_and_not_retried(test_settings):
    client = ai.get_client()
    assert client.max_retries == 0
    assert client.timeout == test_settings.OPENAI_TIMEOUT_SECONDS


def test_image_is_sent_as_data_uri(fake_openai):
    fake_openai.reply({"dishName": "Ramen"})
    asyncio.run(ai.analyze_image(b"abc", "image/jpeg"))
    parts = fake_openai.calls[0]["messages"][1]["content"]
    assert parts[1]["image_url"]["url"] == "data:image/jpeg;base64,YWJj"
