"""Tests for tool input validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from artisan_studio.models.tool_inputs import (
    CustomResolution,
    MergeVideosInput,
    TextToDialogueInput,
    TextToImageInput,
    TextToSpeechInput,
    UpscaleImageInput,
)


def text_to_image(**overrides) -> dict:
    return {
        "prompt": "a red fox",
        "aspectRatio": "1:1",
        "resolution": "1K",
        "numberOfImages": 1,
        **overrides,
    }


def speech(**overrides) -> dict:
    return {
        "text": "Hello",
        "voice": "Rachel",
        "stability": 0.5,
        "similarityBoost": 0.75,
        "speed": 1.0,
        "timestamps": False,
        **overrides,
    }


class TestTextToImageInput:
    """Tests for text-to-image input."""

    def test_camel_case_aliases(self) -> None:
        params = TextToImageInput.model_validate(text_to_image())
        assert params.aspect_ratio == "1:1"
        assert params.number_of_images == 1

    def test_number_of_images_bounds(self) -> None:
        assert TextToImageInput.model_validate(text_to_image(numberOfImages=4))
        with pytest.raises(ValidationError):
            TextToImageInput.model_validate(text_to_image(numberOfImages=5))
        with pytest.raises(ValidationError):
            TextToImageInput.model_validate(text_to_image(numberOfImages=0))

    def test_aspect_ratio_enum(self) -> None:
        with pytest.raises(ValidationError):
            TextToImageInput.model_validate(text_to_image(aspectRatio="21:9"))

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            TextToImageInput.model_validate(text_to_image(seed=42))

    def test_schema_uses_wire_names(self) -> None:
        """The LLM sees camelCase properties."""
        schema = TextToImageInput.model_json_schema(by_alias=True)
        assert "numberOfImages" in schema["properties"]
        assert "number_of_images" not in schema["properties"]


class TestStability:
    """Speech stability is three presets, dialogue stability is continuous."""

    @pytest.mark.parametrize("stability", [0.0, 0.5, 1.0])
    def test_speech_presets(self, stability: float) -> None:
        assert TextToSpeechInput.model_validate(speech(stability=stability)).stability == stability

    def test_speech_rejects_other_values(self) -> None:
        with pytest.raises(ValidationError):
            TextToSpeechInput.model_validate(speech(stability=0.3))

    def test_dialogue_accepts_continuous_values(self) -> None:
        params = TextToDialogueInput.model_validate(
            {
                "inputs": [
                    {"text": "Hi", "voice": "Aria"},
                    {"text": "Hello", "voice": "Roger"},
                ],
                "stability": 0.3,
            }
        )
        assert params.stability == 0.3

    def test_dialogue_needs_two_turns(self) -> None:
        with pytest.raises(ValidationError):
            TextToDialogueInput.model_validate(
                {"inputs": [{"text": "Hi", "voice": "Aria"}], "stability": 0.5}
            )

    def test_speech_speed_range(self) -> None:
        with pytest.raises(ValidationError):
            TextToSpeechInput.model_validate(speech(speed=1.5))


class TestMergeVideosInput:
    """Tests for merge-videos input."""

    def test_needs_two_videos(self) -> None:
        with pytest.raises(ValidationError):
            MergeVideosInput.model_validate({"videoUrls": ["https://x/a.mp4"]})

    def test_resolution_preset(self) -> None:
        params = MergeVideosInput.model_validate(
            {"videoUrls": ["https://x/a.mp4", "https://x/b.mp4"], "resolution": "square_hd"}
        )
        assert params.resolution == "square_hd"

    def test_custom_resolution(self) -> None:
        params = MergeVideosInput.model_validate(
            {
                "videoUrls": ["https://x/a.mp4", "https://x/b.mp4"],
                "resolution": {"width": 1024, "height": 768},
            }
        )
        assert params.resolution == CustomResolution(width=1024, height=768)

    def test_custom_resolution_bounds(self) -> None:
        with pytest.raises(ValidationError):
            MergeVideosInput.model_validate(
                {
                    "videoUrls": ["https://x/a.mp4", "https://x/b.mp4"],
                    "resolution": {"width": 300, "height": 768},
                }
            )


class TestUpscaleImageInput:
    def test_optional_fields_default_to_none(self) -> None:
        params = UpscaleImageInput.model_validate(
            {"imageUrl": "https://x/a.png", "model": "CGI", "upscaleFactor": 2}
        )
        assert params.face_enhancement is None
        assert params.crop_to_fill is None

    def test_upscale_factor_range(self) -> None:
        with pytest.raises(ValidationError):
            UpscaleImageInput.model_validate(
                {"imageUrl": "https://x/a.png", "model": "CGI", "upscaleFactor": 8}
            )
