"""Registry of remote generation models."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from artisan_studio.errors import UnknownCapability
from artisan_studio.models.media import MediaKind


class CapabilityKey(str, Enum):
    """Logical identifier of one remote model binding."""

    IMAGEN4 = "imagen4"
    GEMINI_FLASH_EDIT = "geminiFlashEdit"
    KLING_TEXT_TO_VIDEO = "klingVideoTextToVideo"
    KLING_IMAGE_TO_VIDEO = "klingVideoImageToVideo"
    ELEVENLABS_SOUND_EFFECTS = "elevenlabsSoundEffects"
    FFMPEG_MERGE_AUDIO_VIDEO = "ffmpegMergeAudioVideo"
    REMBG = "rembg"
    ELEVENLABS_TTS = "elevenlabsTts"
    ELEVENLABS_DIALOGUE = "elevenlabsDialogue"
    LIPSYNC = "lipsync"
    FFMPEG_MERGE_VIDEOS = "ffmpegMergeVideos"
    FFMPEG_EXTRACT_FRAME = "ffmpegExtractFrame"
    TOPAZ_UPSCALE_IMAGE = "topazUpscaleImage"
    TOPAZ_UPSCALE_VIDEO = "topazUpscaleVideo"


class ModelBinding(BaseModel):
    """A capability bound to a remote model and its output media kind."""

    model_config = ConfigDict(frozen=True)

    capability_key: CapabilityKey
    remote_model_id: str
    media_kind: MediaKind


def _binding(key: CapabilityKey, remote_model_id: str, kind: MediaKind) -> tuple:
    return key, ModelBinding(capability_key=key, remote_model_id=remote_model_id, media_kind=kind)


MODELS: MappingProxyType[CapabilityKey, ModelBinding] = MappingProxyType(
    dict(
        [
            _binding(CapabilityKey.IMAGEN4, "fal-ai/imagen4/preview", "image"),
            _binding(CapabilityKey.GEMINI_FLASH_EDIT, "fal-ai/gemini-25-flash-image/edit", "image"),
            _binding(
                CapabilityKey.KLING_TEXT_TO_VIDEO,
                "fal-ai/kling-video/v2.5-turbo/pro/text-to-video",
                "video",
            ),
            _binding(
                CapabilityKey.KLING_IMAGE_TO_VIDEO,
                "fal-ai/kling-video/v2.5-turbo/pro/image-to-video",
                "video",
            ),
            _binding(
                CapabilityKey.ELEVENLABS_SOUND_EFFECTS, "fal-ai/elevenlabs/sound-effects/v2", "audio"
            ),
            _binding(
                CapabilityKey.FFMPEG_MERGE_AUDIO_VIDEO, "fal-ai/ffmpeg-api/merge-audio-video", "video"
            ),
            _binding(CapabilityKey.REMBG, "fal-ai/imageutils/rembg", "image"),
            _binding(CapabilityKey.ELEVENLABS_TTS, "fal-ai/elevenlabs/tts/eleven-v3", "audio"),
            _binding(
                CapabilityKey.ELEVENLABS_DIALOGUE,
                "fal-ai/elevenlabs/text-to-dialogue/eleven-v3",
                "audio",
            ),
            _binding(CapabilityKey.LIPSYNC, "creatify/lipsync", "video"),
            _binding(CapabilityKey.FFMPEG_MERGE_VIDEOS, "fal-ai/ffmpeg-api/merge-videos", "video"),
            _binding(CapabilityKey.FFMPEG_EXTRACT_FRAME, "fal-ai/ffmpeg-api/extract-frame", "image"),
            _binding(CapabilityKey.TOPAZ_UPSCALE_IMAGE, "fal-ai/topaz/upscale/image", "image"),
            _binding(CapabilityKey.TOPAZ_UPSCALE_VIDEO, "fal-ai/topaz/upscale/video", "video"),
        ]
    )
)

# Not a media binding: returns JSON, nothing to re-host
METADATA_MODEL_ID = "fal-ai/ffmpeg-api/metadata"


def lookup(key: CapabilityKey | str) -> ModelBinding:
    """Resolve a capability key to its model binding.

    Args:
        key: Capability key, as enum member or its string value.

    Returns:
        The binding for the key.

    Raises:
        UnknownCapability: If the key is not registered.
    """
    try:
        return MODELS[CapabilityKey(key)]
    except (KeyError, ValueError):
        raise UnknownCapability(str(key)) from None
