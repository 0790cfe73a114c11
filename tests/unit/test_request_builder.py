"""Unit tests for OpenRouter request construction."""

from imagen.core.models import MODEL_CONFIGS, GenerationSettings
from imagen.core.request_builder import (
    build_headers,
    build_message_content,
    build_request_body,
    is_gemini_model,
)

GEMINI = "google/gemini-2.5-flash-image"
GEMINI_PRO = "google/gemini-3-pro-image-preview"
GPT = "openai/gpt-5-image"
FLUX = "black-forest-labs/flux.2-pro"

REF_A = "data:image/png;base64,AAAA"
REF_B = "data:image/png;base64,BBBB"


def _body(model_id: str, prompt: str = "a cat", **settings) -> dict:
    return build_request_body(
        prompt, model_id, MODEL_CONFIGS[model_id], GenerationSettings(model=model_id, **settings)
    )


class TestBuildMessageContent:
    """Tests for the user message content."""

    def test_prompt_only_is_bare_string(self):
        assert build_message_content("a cat", MODEL_CONFIGS[GEMINI], ()) == "a cat"

    def test_references_precede_text(self):
        content = build_message_content("a cat", MODEL_CONFIGS[GEMINI], [REF_A, REF_B])

        assert content == [
            {"type": "image_url", "image_url": {"url": REF_A, "detail": "high"}},
            {"type": "image_url", "image_url": {"url": REF_B, "detail": "high"}},
            {"type": "text", "text": "a cat"},
        ]

    def test_references_ignored_without_image_input(self):
        assert build_message_content("a cat", MODEL_CONFIGS[FLUX], [REF_A]) == "a cat"

    def test_references_capped_at_model_maximum(self):
        content = build_message_content("a cat", MODEL_CONFIGS[GPT], [REF_A, REF_B])

        image_parts = [part for part in content if part["type"] == "image_url"]
        assert [part["image_url"]["url"] for part in image_parts] == [REF_A]

    def test_empty_references_are_skipped(self):
        content = build_message_content("a cat", MODEL_CONFIGS[GEMINI], ["", REF_A])

        assert len(content) == 2
        assert content[0]["image_url"]["url"] == REF_A


class TestBuildRequestBody:
    """Tests for model-specific request parameters."""

    def test_gemini_gets_image_config(self):
        body = _body(GEMINI, quality="2K", size="2048x2048", aspect_ratio="16:9")

        assert body["model"] == GEMINI
        assert body["modalities"] == ["image", "text"]
        assert body["image_config"] == {"image_size": "2k", "aspect_ratio": "16:9"}
        assert "aspect_ratio" not in body

    def test_gemini_pro_uses_same_image_config(self):
        body = _body(GEMINI_PRO, quality="4K", aspect_ratio="1:1")
        assert body["image_config"]["image_size"] == "4k"

    def test_non_gemini_gets_top_level_aspect_ratio(self):
        body = _body(FLUX, aspect_ratio="3:2")

        assert body["aspect_ratio"] == "3:2"
        assert "image_config" not in body
        assert body["modalities"] == ["image"]

    def test_gpt_requests_image_and_text(self):
        body = _body(GPT, aspect_ratio="4:3")

        assert body["modalities"] == ["image", "text"]
        assert body["aspect_ratio"] == "4:3"
        assert "image_config" not in body

    def test_single_user_message(self):
        body = _body(GEMINI, prompt="a lighthouse", references=(REF_A,))

        assert len(body["messages"]) == 1
        message = body["messages"][0]
        assert message["role"] == "user"
        assert message["content"][-1] == {"type": "text", "text": "a lighthouse"}

    def test_is_gemini_model(self):
        assert is_gemini_model(GEMINI)
        assert not is_gemini_model(FLUX)


class TestBuildHeaders:
    def test_headers(self):
        headers = build_headers("sk-or-123", "http://127.0.0.1:7860", "Imagen Internal Tool")

        assert headers == {
            "Authorization": "Bearer sk-or-123",
            "Content-Type": "application/json",
            "HTTP-Referer": "http://127.0.0.1:7860",
            "X-Title": "Imagen Internal Tool",
        }
