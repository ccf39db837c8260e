from types import SimpleNamespace

import httpx
import openai
import pytest
from pydantic import ValidationError

from coloring_app.exceptions import (
    ContentPolicyViolationException,
    RateLimitedException,
    UpstreamUnavailableException,
)
from coloring_app.prompting.classifier import classify, extract_keywords
from coloring_app.prompting.content_filter import ensure_family_friendly, find_blocked_terms
from coloring_app.prompting.models import Customizations, GenerationRequest
from coloring_app.prompting.refiner import OpenAIPromptRefiner, TemplatePromptRefiner


def chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def rate_limit_error(retry_after="7"):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(429, request=request, headers={"retry-after": retry_after})
    return openai.RateLimitError("slow down", response=response, body=None)


# ------------------------------
# classifier
# ------------------------------

@pytest.mark.parametrize("prompt,expected", [
    ("a butterfly", "animals"),
    ("a fairy castle", "fantasy"),
    ("geometric patterns", "mandalas"),
    ("a rocket flying past the moon", "space"),
    ("birthday cake with candles", "food"),
])
def test_classify(prompt, expected):
    assert classify(prompt) == expected


def test_classify_matches_whole_words_only():
    # "cart" must not hit "car", "category" must not hit "cat"
    assert classify("a cart in the category") == "other"


def test_classify_tie_goes_to_earlier_category():
    # one animal keyword, one vehicle keyword
    assert classify("a dog in a car") == "animals"


def test_theme_only_replaces_other():
    assert classify("an abstract idea", theme="space") == "space"
    assert classify("a butterfly", theme="space") == "animals"


def test_extract_keywords():
    assert extract_keywords("a dragon guarding a castle") == ["dragon", "castle"]
    assert extract_keywords("an abstract idea") == ["abstract", "idea"]


# ------------------------------
# content filter
# ------------------------------

def test_find_blocked_terms():
    assert find_blocked_terms("a scary monster with a knife") == ["scary", "knife"]
    assert find_blocked_terms("a happy puppy") == []


def test_blocked_phrase():
    assert "dark magic" in find_blocked_terms("a wizard using Dark  Magic")


def test_blocked_terms_respect_word_boundaries():
    # "skill" contains "kill", "gunther" contains "gun"
    assert find_blocked_terms("a skilled painter named Gunther") == []


def test_ensure_family_friendly_raises():
    with pytest.raises(ContentPolicyViolationException) as exc:
        ensure_family_friendly("guns and blood")
    assert "gun" in exc.value.detail


# ------------------------------
# request models
# ------------------------------

def test_prompt_length_limit():
    with pytest.raises(ValidationError) as exc:
        GenerationRequest(prompt="a" * 501)
    assert "500" in str(exc.value)


def test_prompt_whitespace_is_normalized():
    req = GenerationRequest(prompt="  a   happy\n cat ")
    assert req.prompt == "a happy cat"
    assert req.customizations.complexity == "medium"


def test_customizations_accept_camel_case():
    custom = Customizations.model_validate({"ageGroup": "adults", "lineThickness": "thick", "theme": "Space"})
    assert custom.age_group == "adults"
    assert custom.line_thickness == "thick"
    assert custom.theme == "space"


def test_unknown_theme_rejected():
    with pytest.raises(ValidationError):
        Customizations(theme="cyberpunk")


# ------------------------------
# refiners
# ------------------------------

def test_template_refiner():
    refined = TemplatePromptRefiner().refine("a butterfly", Customizations(age_group="kids"))

    assert refined.category == "animals"
    assert refined.method == "template"
    assert refined.original_prompt == "a butterfly"
    assert "butterfly" in refined.refined_prompt
    assert "bold outlines" in refined.refined_prompt
    assert "300 DPI" in refined.refined_prompt


def test_openai_refiner_uses_completion(mocker):
    client = mocker.MagicMock()
    client.chat.completions.create.return_value = chat_response('"A detailed butterfly on a flower"')

    refined = OpenAIPromptRefiner(client, model="gpt-4o-mini").refine("a butterfly", Customizations())

    assert refined.refined_prompt == "A detailed butterfly on a flower"
    assert refined.method == "llm"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert "a butterfly" in kwargs["messages"][1]["content"]


def test_flagged_completion_falls_back_to_template(mocker):
    client = mocker.MagicMock()
    client.chat.completions.create.return_value = chat_response(
        "A friendly cartoon ghost in a pumpkin patch, cute and not scary, bold outlines"
    )

    refined = OpenAIPromptRefiner(client).refine("a friendly ghost", Customizations())

    assert refined.method == "template"
    assert "scary" not in refined.refined_prompt
    assert "friendly ghost" in refined.refined_prompt
    client.chat.completions.create.assert_called_once()


def test_blocked_prompt_never_reaches_openai(mocker):
    client = mocker.MagicMock()
    with pytest.raises(ContentPolicyViolationException):
        OpenAIPromptRefiner(client).refine("a bloody knife", Customizations())
    client.chat.completions.create.assert_not_called()


def test_openai_refiner_translates_rate_limit(mocker):
    client = mocker.MagicMock()
    client.chat.completions.create.side_effect = rate_limit_error("7")

    with pytest.raises(RateLimitedException) as exc:
        OpenAIPromptRefiner(client).refine("a cat", Customizations())
    assert exc.value.retry_after == 7


def test_openai_refiner_empty_completion(mocker):
    client = mocker.MagicMock()
    client.chat.completions.create.return_value = chat_response("   ")

    with pytest.raises(UpstreamUnavailableException) as exc:
        OpenAIPromptRefiner(client).refine("a cat", Customizations())
    assert exc.value.status_code == 500
