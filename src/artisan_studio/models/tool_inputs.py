"""Validated input schemas for the agent tools.

Field names are snake_case in Python and camelCase on the wire, which is what
the LLM sees in the tool JSON schemas.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ImageAspectRatio = Literal["1:1", "4:3", "9:16", "16:9", "3:4"]
VideoAspectRatio = Literal["1:1", "9:16", "16:9"]
VideoDuration = Literal["5", "10"]

Voice = Literal[
    "Aria",
    "Roger",
    "Sarah",
    "Laura",
    "Charlie",
    "George",
    "Callum",
    "River",
    "Liam",
    "Charlotte",
    "Alice",
    "Matilda",
    "Will",
    "Jessica",
    "Eric",
    "Chris",
    "Brain",
    "Daniel",
    "Lilly",
    "Bill",
    "Rachel",
]

UpscaleModel = Literal[
    "Standard V2",
    "Recovery V2",
    "High Fidelity V2",
    "CGI",
    "Text Refine",
    "Redefine",
]

ResolutionPreset = Literal[
    "square_hd",
    "square",
    "portrait_4_3",
    "portrait_9_16",
    "landscape_4_3",
    "landscape_16_9",
]


class ToolInput(BaseModel):
    """Base for tool inputs: camelCase aliases, unknown fields rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class TextToImageInput(ToolInput):
    prompt: str = Field(description="The text prompt to generate images from.")
    aspect_ratio: ImageAspectRatio = Field(description="The aspect ratio of the generated images.")
    resolution: Literal["1K", "2K"] = Field(description="The resolution of the generated images.")
    number_of_images: int = Field(
        ge=1,
        le=4,
        description="Number of separate model generations to be run with the prompt.",
    )


class ImageToImageInput(ToolInput):
    prompt: str = Field(description="The prompt for the image generation")
    image_urls: list[str] = Field(
        min_length=1, description="The URLs of the source images used by the model"
    )
    aspect_ratio: ImageAspectRatio = Field(description="The aspect ratio of the generated images.")
    number_of_images: int = Field(
        ge=1,
        le=4,
        description="Number of separate model generations to be run with the prompt.",
    )


class TextToSoundEffectInput(ToolInput):
    text: str = Field(description="The text describing the sound effect to generate.")
    duration_seconds: float | None = Field(
        default=None,
        ge=0.5,
        le=22,
        description=(
            "Duration in seconds (0.5-22). If omitted, optimal duration will be "
            "determined from prompt."
        ),
    )
    prompt_influence: float = Field(
        ge=0,
        le=1,
        description=(
            "How closely to follow the prompt (0-1). Higher values mean less variation. "
            "Default: 0.3"
        ),
    )


class TextToVideoInput(ToolInput):
    prompt: str = Field(description="The text describing the video to generate.")
    duration: VideoDuration = Field(description="Duration of the video in seconds (5 or 10).")
    aspect_ratio: VideoAspectRatio = Field(description="The aspect ratio of the generated video.")
    negative_prompt: str | None = Field(
        default=None, description="What to avoid in the video generation."
    )
    cfg_scale: float = Field(
        ge=0,
        le=1,
        description="How closely to follow the prompt (0-1). Higher values stick closer to prompt.",
    )


class ImageToVideoInput(ToolInput):
    prompt: str = Field(description="The description of how to animate or transform the image.")
    image_url: str = Field(description="The URL of the source image to animate.")
    duration: VideoDuration = Field(description="Duration of the video in seconds (5 or 10).")
    negative_prompt: str | None = Field(
        default=None, description="What to avoid in the video generation."
    )
    cfg_scale: float = Field(
        ge=0,
        le=1,
        description="How closely to follow the prompt (0-1). Higher values stick closer to prompt.",
    )


class MergeAudioVideoInput(ToolInput):
    video_url: str = Field(description="The URL of the video file to use as the video track.")
    audio_url: str = Field(description="The URL of the audio file to use as the audio track.")
    start_offset: float = Field(
        ge=0,
        description="Offset in seconds for when the audio should start relative to the video.",
    )


class RemoveBackgroundInput(ToolInput):
    image_url: str = Field(description="The URL of the source image to remove background from.")
    crop_to_bbox: bool = Field(
        description="Whether to crop the result to the bounding box of the main subject."
    )


class UpscaleImageInput(ToolInput):
    image_url: str = Field(description="The URL of the image to upscale.")
    model: UpscaleModel = Field(
        description=(
            "Model to use for upscaling. Standard V2: balanced quality. Recovery V2: recover "
            "details from compressed images. High Fidelity V2: maximum detail preservation. "
            "CGI: optimized for computer-generated imagery. Text Refine: sharpen text in "
            "images. Redefine: creative enhancement."
        )
    )
    upscale_factor: float = Field(
        ge=1,
        le=4,
        description="Factor to upscale the image by (e.g. 2.0 doubles width and height).",
    )
    subject_detection: Literal["Foreground", "Background", "All"] | None = Field(
        default=None,
        description=(
            "Subject detection mode. Foreground: enhance foreground subjects. Background: "
            "enhance background. All: enhance entire image."
        ),
    )
    face_enhancement: bool | None = Field(
        default=None, description="Whether to apply face enhancement to detected faces."
    )
    face_enhancement_strength: float | None = Field(
        default=None,
        ge=0,
        le=1,
        description=(
            "Strength of face enhancement (0.0 = no enhancement, 1.0 = maximum). Only used "
            "if faceEnhancement is true."
        ),
    )
    face_enhancement_creativity: float | None = Field(
        default=None,
        ge=0,
        le=1,
        description=(
            "Creativity level for face enhancement (0.0 = no creativity, 1.0 = maximum). "
            "Only used if faceEnhancement is true."
        ),
    )
    crop_to_fill: bool | None = Field(
        default=None, description="Whether to crop the result to fill the target dimensions."
    )


class UpscaleVideoInput(ToolInput):
    video_url: str = Field(description="The URL of the video to upscale.")
    upscale_factor: float = Field(
        ge=1,
        le=4,
        description="Factor to upscale the video by (e.g. 2.0 doubles width and height).",
    )
    target_fps: int | None = Field(
        default=None,
        ge=1,
        le=120,
        description=(
            "Target FPS for frame interpolation. If set, frame interpolation will be enabled "
            "to smooth motion."
        ),
    )


class TextToSpeechInput(ToolInput):
    text: str = Field(description="The text to convert to speech.")
    voice: Voice = Field(description="The voice to use for speech generation.")
    # The TTS endpoint only accepts these three presets
    stability: Literal[0.0, 0.5, 1.0] = Field(
        description="Voice stability: 0.0 = Creative, 0.5 = Natural, 1.0 = Robust (consistent)"
    )
    similarity_boost: float = Field(
        ge=0,
        le=1,
        description="Similarity boost (0-1). Higher values make speech closer to the original voice.",
    )
    speed: float = Field(
        ge=0.7,
        le=1.2,
        description="Speech speed (0.7-1.2). Values below 1.0 slow down, above 1.0 speed up.",
    )
    style: float | None = Field(
        default=None,
        ge=0,
        le=1,
        description="Style exaggeration (0-1). Higher values add more emotion and expression.",
    )
    timestamps: bool = Field(
        description="Whether to return timestamps for each word in the generated speech."
    )


class DialogueTurn(ToolInput):
    text: str = Field(description="The text for this speaker to say.")
    voice: Voice = Field(description="The voice for this speaker.")


class TextToDialogueInput(ToolInput):
    inputs: list[DialogueTurn] = Field(
        min_length=2,
        description="Array of dialogue turns with text and voice for each speaker.",
    )
    stability: float = Field(
        ge=0,
        le=1,
        description=(
            "Voice stability (0-1). Lower values introduce emotional range, higher values are "
            "more monotonous."
        ),
    )


class LipsyncInput(ToolInput):
    video_url: str = Field(
        description=(
            "The URL of a video showing someone talking/speaking (with visible mouth movements)."
        )
    )
    audio_url: str = Field(
        description="The URL of the new audio that the person should lip-sync to."
    )
    loop: bool = Field(
        description=(
            "Whether to loop the video if the new audio is longer than the original video "
            "duration."
        )
    )


class CustomResolution(ToolInput):
    width: int = Field(ge=512, le=2048)
    height: int = Field(ge=512, le=2048)


class MergeVideosInput(ToolInput):
    video_urls: list[str] = Field(
        min_length=2,
        description="Array of video URLs to merge together. Minimum 2 videos required.",
    )
    target_fps: int | None = Field(
        default=None,
        ge=1,
        le=60,
        description=(
            "Target FPS for the output video (1-60). If not provided, uses the lowest FPS "
            "from input videos."
        ),
    )
    resolution: ResolutionPreset | CustomResolution | None = Field(
        default=None,
        description=(
            "Resolution preset or custom dimensions. Width and height must be between 512 "
            "and 2048."
        ),
    )


class ExtractFrameInput(ToolInput):
    video_url: str = Field(description="The URL of the video file to extract a frame from.")
    frame_type: Literal["first", "middle", "last"] | None = Field(
        default=None,
        description=(
            "Type of frame to extract: first, middle, or last frame of the video. Default: first"
        ),
    )


class ExtractMetadataInput(ToolInput):
    media_url: str = Field(
        description="The URL of the media file (image, video, or audio) to extract metadata from."
    )
    extract_frames: bool = Field(
        description=(
            "Whether to extract frame thumbnails from video files. Set to false for images "
            "and audio."
        )
    )
