"""Agent tool surface.

Each tool validates its input, maps it onto the remote model's input shape and
delegates to the generation adapter. Failures leave a tool as a
ToolExecutionError whose message names the tool and tells the agent (and
ultimately the user) what to do about it, so a timeout reads the same whether
it came from text-to-image or lipsync.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from textwrap import dedent
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from artisan_studio.errors import (
    ArtisanError,
    ErrorKind,
    GenerationCancelled,
    InvalidContext,
    ToolExecutionError,
    ToolInputError,
    UnknownTool,
)
from artisan_studio.logging import get_logger
from artisan_studio.models.media import DataOutput, MediaOutput
from artisan_studio.models.tool_inputs import (
    ExtractFrameInput,
    ExtractMetadataInput,
    ImageToImageInput,
    ImageToVideoInput,
    LipsyncInput,
    MergeAudioVideoInput,
    MergeVideosInput,
    RemoveBackgroundInput,
    TextToDialogueInput,
    TextToImageInput,
    TextToSoundEffectInput,
    TextToSpeechInput,
    TextToVideoInput,
    ToolInput,
    UpscaleImageInput,
    UpscaleVideoInput,
)
from artisan_studio.registry import METADATA_MODEL_ID, CapabilityKey

if TYPE_CHECKING:
    from artisan_studio.fal_client import FalClient
    from artisan_studio.generation import ExecutionContext, GenerationAdapter

logger = get_logger(__name__)

ToolResult = MediaOutput | DataOutput
Executor = Callable[[Any, "ExecutionContext", "asyncio.Event | None"], Awaitable[ToolResult]]


GUIDANCE: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: (
        "Network connectivity issues prevented the request from completing. "
        "This is likely a temporary issue."
    ),
    ErrorKind.STORAGE: (
        "Generated content could not be saved to storage. "
        "The generation completed but file upload failed."
    ),
    ErrorKind.TIMEOUT: (
        "Request timed out, likely due to complex input or high server load. "
        "Suggest trying simpler parameters or trying again later."
    ),
    ErrorKind.CONTENT_REJECTED: (
        "Input was rejected by content safety filters. "
        "The user should modify their input to remove potentially problematic content."
    ),
    ErrorKind.RATE_LIMITED: (
        "Rate limit exceeded. The user needs to wait before making another request."
    ),
}

_UNKNOWN_SUFFIX = "This could be due to service unavailability or an internal error."


def classify_error(error: BaseException) -> ErrorKind:
    """Bucket a failure by the kind it was tagged with where it was raised."""
    if isinstance(error, ArtisanError):
        return error.kind
    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ErrorKind.NETWORK
    return ErrorKind.UNKNOWN


def tool_error(tool_name: str, error: BaseException) -> ToolExecutionError:
    """Build the classified, user-actionable error for a failed tool."""
    kind = classify_error(error)
    if kind in GUIDANCE:
        return ToolExecutionError(tool_name, kind, f"{tool_name} failed: {GUIDANCE[kind]}")

    detail = str(error).rstrip(".")
    if not detail:
        detail = "Unknown error occurred during execution"
    return ToolExecutionError(tool_name, kind, f"{tool_name} failed: {detail}. {_UNKNOWN_SUFFIX}")


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    """Drop unset optional fields from a remote input payload."""
    return {k: v for k, v in values.items() if v is not None}


@dataclass(frozen=True)
class ToolDefinition:
    """A named agent tool."""

    name: str
    description: str
    input_model: type[ToolInput]
    executor: Executor

    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the tool input as the LLM sees it."""
        return self.input_model.model_json_schema(by_alias=True)


class ToolSurface:
    """The fixed set of tools offered to the agent."""

    def __init__(self, adapter: GenerationAdapter, fal: FalClient) -> None:
        """Initialize the tool surface.

        Args:
            adapter: Generation adapter used by the media tools.
            fal: Remote model client, used directly by extract-metadata.
        """
        self.adapter = adapter
        self.fal = fal
        self._tools: dict[str, ToolDefinition] = {}
        for definition in self._build_definitions():
            if definition.name in self._tools:
                msg = f"Duplicate tool name: {definition.name}"
                raise ValueError(msg)
            self._tools[definition.name] = definition

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def definitions(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def get(self, name: str) -> ToolDefinition:
        """Look up a tool by name.

        Raises:
            UnknownTool: If no tool has this name.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownTool(name) from None

    def validate(self, name: str, arguments: dict[str, Any] | ToolInput) -> ToolInput:
        """Validate raw arguments against a tool's input model.

        Raises:
            UnknownTool: If no tool has this name.
            ToolInputError: If the arguments violate the schema.
        """
        definition = self.get(name)
        if isinstance(arguments, definition.input_model):
            return arguments
        if isinstance(arguments, ToolInput):
            arguments = arguments.model_dump(by_alias=True)
        try:
            return definition.input_model.model_validate(arguments)
        except ValidationError as e:
            raise ToolInputError(name, e) from e

    async def invoke(
        self,
        name: str,
        arguments: dict[str, Any] | ToolInput,
        context: ExecutionContext,
        cancel_event: asyncio.Event | None = None,
    ) -> ToolResult:
        """Validate and execute a tool.

        Context and input are both checked before anything remote happens.

        Args:
            name: Tool name.
            arguments: Raw (camelCase) arguments or an input model instance.
            context: Execution context of the call.
            cancel_event: Optional cancellation signal.

        Returns:
            The tool output.

        Raises:
            UnknownTool: If no tool has this name.
            InvalidContext: If the context lacks user or project.
            ToolInputError: If the arguments violate the schema.
            ToolExecutionError: If execution failed (classified).
            GenerationCancelled: If cancelled.
        """
        context.validate()
        params = self.validate(name, arguments)
        return await self.execute(self.get(name), params, context, cancel_event)

    async def execute(
        self,
        definition: ToolDefinition,
        params: ToolInput,
        context: ExecutionContext,
        cancel_event: asyncio.Event | None = None,
    ) -> ToolResult:
        """Execute a tool with already-validated input."""
        context.validate()
        try:
            return await definition.executor(params, context, cancel_event)
        except (InvalidContext, GenerationCancelled):
            raise
        except Exception as e:
            logger.exception(
                "Tool execution error",
                tool_name=definition.name,
                tool_call_id=context.tool_call_id,
            )
            raise tool_error(definition.name, e) from e

    # ------------------------------------------------------------------
    # Executors
    # ------------------------------------------------------------------

    async def _generate(
        self,
        key: CapabilityKey,
        input: dict[str, Any],
        context: ExecutionContext,
        cancel_event: asyncio.Event | None,
    ) -> MediaOutput:
        result = await self.adapter.generate(key, input, context, cancel_event)
        return MediaOutput(files=result.files)

    async def _text_to_image(self, p: TextToImageInput, context, cancel_event) -> MediaOutput:
        return await self._generate(
            CapabilityKey.IMAGEN4,
            {
                "prompt": p.prompt,
                "aspect_ratio": p.aspect_ratio,
                "resolution": p.resolution,
                "num_images": p.number_of_images,
            },
            context,
            cancel_event,
        )

    async def _image_to_image(self, p: ImageToImageInput, context, cancel_event) -> MediaOutput:
        # The edit model takes no aspect ratio
        return await self._generate(
            CapabilityKey.GEMINI_FLASH_EDIT,
            {
                "prompt": p.prompt,
                "image_urls": p.image_urls,
                "num_images": p.number_of_images,
            },
            context,
            cancel_event,
        )

    async def _text_to_sound_effect(
        self, p: TextToSoundEffectInput, context, cancel_event
    ) -> MediaOutput:
        return await self._generate(
            CapabilityKey.ELEVENLABS_SOUND_EFFECTS,
            _compact(
                {
                    "text": p.text,
                    "prompt_influence": p.prompt_influence,
                    "output_format": "mp3_44100_128",
                    "duration_seconds": p.duration_seconds,
                }
            ),
            context,
            cancel_event,
        )

    async def _text_to_video(self, p: TextToVideoInput, context, cancel_event) -> MediaOutput:
        return await self._generate(
            CapabilityKey.KLING_TEXT_TO_VIDEO,
            {
                "prompt": p.prompt,
                "duration": p.duration,
                "aspect_ratio": p.aspect_ratio,
                "negative_prompt": p.negative_prompt or "",
                "cfg_scale": p.cfg_scale,
            },
            context,
            cancel_event,
        )

    async def _image_to_video(self, p: ImageToVideoInput, context, cancel_event) -> MediaOutput:
        return await self._generate(
            CapabilityKey.KLING_IMAGE_TO_VIDEO,
            {
                "prompt": p.prompt,
                "image_url": p.image_url,
                "duration": p.duration,
                "negative_prompt": p.negative_prompt or "",
                "cfg_scale": p.cfg_scale,
            },
            context,
            cancel_event,
        )

    async def _merge_audio_video(
        self, p: MergeAudioVideoInput, context, cancel_event
    ) -> MediaOutput:
        return await self._generate(
            CapabilityKey.FFMPEG_MERGE_AUDIO_VIDEO,
            {
                "video_url": p.video_url,
                "audio_url": p.audio_url,
                "start_offset": p.start_offset,
            },
            context,
            cancel_event,
        )

    async def _remove_background(
        self, p: RemoveBackgroundInput, context, cancel_event
    ) -> MediaOutput:
        return await self._generate(
            CapabilityKey.REMBG,
            {"image_url": p.image_url, "crop_to_bbox": p.crop_to_bbox},
            context,
            cancel_event,
        )

    async def _upscale_image(self, p: UpscaleImageInput, context, cancel_event) -> MediaOutput:
        return await self._generate(
            CapabilityKey.TOPAZ_UPSCALE_IMAGE,
            _compact(
                {
                    "image_url": p.image_url,
                    "model": p.model,
                    "upscale_factor": p.upscale_factor,
                    "subject_detection": p.subject_detection,
                    "face_enhancement": p.face_enhancement,
                    "face_enhancement_strength": p.face_enhancement_strength,
                    "face_enhancement_creativity": p.face_enhancement_creativity,
                    "crop_to_fill": p.crop_to_fill,
                }
            ),
            context,
            cancel_event,
        )

    async def _upscale_video(self, p: UpscaleVideoInput, context, cancel_event) -> MediaOutput:
        return await self._generate(
            CapabilityKey.TOPAZ_UPSCALE_VIDEO,
            _compact(
                {
                    "video_url": p.video_url,
                    "upscale_factor": p.upscale_factor,
                    "target_fps": p.target_fps,
                }
            ),
            context,
            cancel_event,
        )

    async def _text_to_speech(self, p: TextToSpeechInput, context, cancel_event) -> MediaOutput:
        return await self._generate(
            CapabilityKey.ELEVENLABS_TTS,
            _compact(
                {
                    "text": p.text,
                    "voice": p.voice,
                    "stability": p.stability,
                    "similarity_boost": p.similarity_boost,
                    "speed": p.speed,
                    "style": p.style,
                    "timestamps": p.timestamps,
                }
            ),
            context,
            cancel_event,
        )

    async def _text_to_dialogue(
        self, p: TextToDialogueInput, context, cancel_event
    ) -> MediaOutput:
        return await self._generate(
            CapabilityKey.ELEVENLABS_DIALOGUE,
            {
                "inputs": [{"text": turn.text, "voice": turn.voice} for turn in p.inputs],
                "stability": p.stability,
            },
            context,
            cancel_event,
        )

    async def _lipsync(self, p: LipsyncInput, context, cancel_event) -> MediaOutput:
        return await self._generate(
            CapabilityKey.LIPSYNC,
            {"video_url": p.video_url, "audio_url": p.audio_url, "loop": p.loop},
            context,
            cancel_event,
        )

    async def _merge_videos(self, p: MergeVideosInput, context, cancel_event) -> MediaOutput:
        resolution = p.resolution
        if isinstance(resolution, ToolInput):
            resolution = resolution.model_dump()
        return await self._generate(
            CapabilityKey.FFMPEG_MERGE_VIDEOS,
            _compact(
                {
                    "video_urls": p.video_urls,
                    "target_fps": p.target_fps,
                    "resolution": resolution,
                }
            ),
            context,
            cancel_event,
        )

    async def _extract_frame(self, p: ExtractFrameInput, context, cancel_event) -> MediaOutput:
        return await self._generate(
            CapabilityKey.FFMPEG_EXTRACT_FRAME,
            _compact({"video_url": p.video_url, "frame_type": p.frame_type}),
            context,
            cancel_event,
        )

    async def _extract_metadata(
        self, p: ExtractMetadataInput, context, cancel_event
    ) -> DataOutput:
        # Metadata is not a media file: no extraction, no upload
        payload = await self.fal.subscribe(
            METADATA_MODEL_ID,
            {"media_url": p.media_url, "extract_frames": p.extract_frames},
            cancel_event,
        )
        return DataOutput(payload=payload, format="json")

    def _build_definitions(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                "text-to-image", TEXT_TO_IMAGE, TextToImageInput, self._text_to_image
            ),
            ToolDefinition(
                "image-to-image", IMAGE_TO_IMAGE, ImageToImageInput, self._image_to_image
            ),
            ToolDefinition(
                "text-to-sound-effect",
                TEXT_TO_SOUND_EFFECT,
                TextToSoundEffectInput,
                self._text_to_sound_effect,
            ),
            ToolDefinition(
                "text-to-speech", TEXT_TO_SPEECH, TextToSpeechInput, self._text_to_speech
            ),
            ToolDefinition(
                "text-to-dialogue",
                TEXT_TO_DIALOGUE,
                TextToDialogueInput,
                self._text_to_dialogue,
            ),
            ToolDefinition(
                "text-to-video", TEXT_TO_VIDEO, TextToVideoInput, self._text_to_video
            ),
            ToolDefinition(
                "image-to-video", IMAGE_TO_VIDEO, ImageToVideoInput, self._image_to_video
            ),
            ToolDefinition("lipsync", LIPSYNC, LipsyncInput, self._lipsync),
            ToolDefinition(
                "merge-audio-video",
                MERGE_AUDIO_VIDEO,
                MergeAudioVideoInput,
                self._merge_audio_video,
            ),
            ToolDefinition(
                "merge-videos", MERGE_VIDEOS, MergeVideosInput, self._merge_videos
            ),
            ToolDefinition(
                "extract-frame", EXTRACT_FRAME, ExtractFrameInput, self._extract_frame
            ),
            ToolDefinition(
                "remove-background",
                REMOVE_BACKGROUND,
                RemoveBackgroundInput,
                self._remove_background,
            ),
            ToolDefinition(
                "upscale-image", UPSCALE_IMAGE, UpscaleImageInput, self._upscale_image
            ),
            ToolDefinition(
                "upscale-video", UPSCALE_VIDEO, UpscaleVideoInput, self._upscale_video
            ),
            ToolDefinition(
                "extract-metadata",
                EXTRACT_METADATA,
                ExtractMetadataInput,
                self._extract_metadata,
            ),
        ]


# ============================================================================
# Tool descriptions (read by the LLM)
# ============================================================================

TEXT_TO_IMAGE = dedent(
    """
    Generate completely new images from text prompts only. Creates original imagery from scratch without visual references.

    WHEN TO USE:
    - Creating new concept art, illustrations, portraits, landscapes, logos
    - No existing visual references available
    - Need multiple variations (use numberOfImages parameter for batch generation)

    WHEN NOT TO USE:
    - Modifying existing images → use image-to-image instead
    - Character appears in multiple scenes → generate ONCE, reuse URL across scenes
    - Creating variations of existing design → use image-to-image with base URL

    EFFICIENCY TIPS:
    - For conversations: Generate 1 portrait per unique speaker, NOT per dialogue line
    - For character consistency: Generate portrait once, reuse URL across all animations
    - For variations: Use numberOfImages for batch generation in single call
    - Rich prompts get better results: include lighting, atmosphere, art style, camera angle
    """
).strip()

IMAGE_TO_IMAGE = dedent(
    """
    Transform, modify, enhance, or create variations from existing images.

    WHEN TO USE:
    - Modifying existing images (add/remove elements, change colors/lighting/composition)
    - Combining multiple images (compositing, collaging, blending)
    - Style transfers and artistic transformations
    - Creating variations of existing designs (logos, illustrations, concepts)
    - Using images as style/mood references

    WHEN NOT TO USE:
    - Creating completely new images without references → use text-to-image
    - Simple background removal → use remove-background (faster, specialized)

    EFFICIENCY TIPS:
    - Reuse base images for multiple variations (generate logo once, create color variants by reusing base URL)
    - Clearly specify what to preserve vs what to change in prompt
    - When using multiple image URLs, explain how they should interact
    """
).strip()

TEXT_TO_SOUND_EFFECT = dedent(
    """
    Generate sound effects from text descriptions. Create ambient sounds, impacts, transitions, foley, atmospheric audio.

    WHEN TO USE:
    - UI sounds, game effects, video sound design, atmospheric audio, transitions
    - Need specific sound characteristics (pitch, intensity, texture, decay)

    EFFICIENCY TIPS:
    - Fast, cheap operation - generate liberally
    - Be specific in description: "heavy wooden door closing in large hall" vs just "door close"
    - Lower promptInfluence (0.2-0.4) for more creative variety
    - Auto-determine duration when possible (omit durationSeconds parameter)
    """
).strip()

TEXT_TO_VIDEO = dedent(
    """
    Generate videos from text descriptions. Creates dynamic video content with motion and visual storytelling.

    WHEN TO USE:
    - Creating video content from scratch with described motion and action
    - Dynamic scenes requiring camera movement and subject animation

    WHEN NOT TO USE:
    - Need audio → This generates SILENT video only. Generate video + audio IN PARALLEL, then use merge-audio-video
    - Animating existing images → use image-to-video (faster, better results)

    CRITICAL: NO AUDIO - This tool produces silent video. Always generate audio separately and merge.

    EFFICIENCY TIPS:
    - Most expensive operation - parallelize with other operations when possible
    - For videos with sound: PARALLEL generate video + audio, then merge
    - Describe motion explicitly: camera movement, subject actions, pacing, transitions
    - Use negative prompts to avoid unwanted artifacts
    """
).strip()

IMAGE_TO_VIDEO = dedent(
    """
    Animate static images with motion and effects. Brings photos to life with described movements.

    WHEN TO USE:
    - Bringing static images to life with motion
    - Creating transitions and dynamic storytelling from static images

    WHEN NOT TO USE:
    - Need audio → This generates SILENT video only. Use merge-audio-video afterward

    CRITICAL: NO AUDIO - Generates silent video only. Generate video + audio IN PARALLEL, then merge.

    EFFICIENCY TIPS:
    - Expensive operation - parallelize with other operations when possible
    - Describe desired motion clearly: zoom, pan, rotation, character movement
    - Specify what should remain static vs what should move
    - Lower cfgScale (0.3-0.5) allows more creative interpretation
    """
).strip()

MERGE_AUDIO_VIDEO = dedent(
    """
    Merge a single audio file with a single video file. Combines separate video and audio tracks with timing control.

    WHEN TO USE:
    - Adding audio to silent videos (from text-to-video or image-to-video)
    - Replacing video soundtracks
    - Synchronizing narration or music with video content

    EFFICIENCY TIPS:
    - Fast, cheap operation - use liberally
    - Always generate video + audio IN PARALLEL, then merge (never sequential)
    - If lengths differ, output matches video duration (audio loops or cuts)
    - Use startOffset for precise audio synchronization
    """
).strip()

TEXT_TO_SPEECH = dedent(
    """
    Convert text to natural-sounding speech. Generates audio narration and voice-overs with multiple voice options.

    WHEN TO USE:
    - Voice-overs for videos, narration, accessibility features, audio presentations
    - Need natural human speech with emotional expression control

    EFFICIENCY TIPS:
    - Fast, cheap operation - generate liberally
    - For conversations: Use CONSISTENT voice per character throughout (Sarah for Person A, Charlie for Person B across all lines)
    - Match stability to use case: 0.0 for expressive/creative, 1.0 for consistent narration
    - Adjust style parameter for emotional content; omit for neutral speech
    """
).strip()

TEXT_TO_DIALOGUE = dedent(
    """
    Generate natural multi-speaker conversation audio as a single continuous file with realistic timing, overlaps, and contextual tone changes between speakers.

    WHEN TO USE:
    - Want single continuous conversation audio with natural flow and timing
    - Creating single-take conversation videos (wide shots, podcast-style, interviews)
    - Need contextual tone changes (speaker B reacts to speaker A's emotion)
    - Podcast discussions, interview videos, documentary narration with guest voices

    WHEN NOT TO USE:
    - Need visual cuts between speakers per line → use separate text-to-speech + lipsync per line instead
    - Need individual control over each line's audio parameters (speed, style, etc.)
    - Creating segmented conversation videos with alternating close-ups of speakers

    EFFICIENCY TIPS:
    - Generates entire multi-speaker conversation in one API call vs multiple text-to-speech calls
    - Best paired with wide shots showing both speakers or single-speaker-focus videos
    - Use square brackets for sound effects: [applause], [gulps], [laughs], [sighs]
    - Use square brackets for accents/emotions: [strong canadian accent], [excited], [whispers]
    - Output is single audio file with all speakers - cannot be split per speaker afterward
    - More natural conversation flow with proper pacing and speaker interactions than separate TTS calls
    """
).strip()

LIPSYNC = dedent(
    """
    Replace audio in a video of someone talking and automatically adjust their mouth movements to match the new audio. Outputs complete video with synced audio.

    WHEN TO USE:
    - Dubbing existing talking videos with different audio/language
    - Creating multiple versions of same talking video with different narration
    - Replacing placeholder audio in talking head videos

    WHEN NOT TO USE:
    - Video doesn't show someone talking/speaking (requires visible mouth movements)
    - Need to generate video from scratch → use text-to-video or image-to-video first

    EFFICIENCY CRITICAL - ASSET REUSE:
    - For conversations: Generate ONE base talking video, reuse it with MULTIPLE different audio files
    - Example: 8-line conversation = 1 base talking video + 8 lip-syncs with different audio (NOT 8 video generations!)
    - Use loop parameter to repeat video if new audio is longer than original video
    - Works best with clear frontal view of person talking
    - Output includes both synced video AND audio - no need to merge separately
    """
).strip()

REMOVE_BACKGROUND = dedent(
    """
    Remove background from images automatically, creating transparent PNGs.

    WHEN TO USE:
    - Product photos, portraits, preparing images for compositing, creating transparent assets
    - Need to isolate subject from background quickly

    EFFICIENCY TIPS:
    - Fast, cheap operation - use liberally
    - Use cropToBbox: true for cleaner results when subject isolation is the goal
    - Works best with clear subjects and distinct backgrounds
    - May struggle with complex edges or transparent/reflective objects
    """
).strip()

UPSCALE_IMAGE = dedent(
    """
    Upscale and enhance image quality using professional AI models. Increases resolution while preserving or enhancing details.

    WHEN TO USE:
    - Improve quality of generated or existing images
    - Prepare images for large displays or prints
    - Enhance low-resolution images
    - Recover details from compressed images
    - Sharpen text in images

    MODEL SELECTION:
    - Standard V2: Balanced quality for general use (default)
    - Recovery V2: Best for recovering details from compressed/low-quality images
    - High Fidelity V2: Maximum detail preservation for high-quality sources
    - CGI: Optimized for computer-generated imagery and graphics
    - Text Refine: Specialized for sharpening text and documents
    - Redefine: Creative enhancement with artistic interpretation

    EFFICIENCY TIPS:
    - Use after generating images that need higher resolution
    - Enable faceEnhancement for portraits (improves facial details)
    - Use Recovery V2 for images that look compressed or degraded
    - Higher upscaleFactor means larger file sizes and longer processing
    """
).strip()

UPSCALE_VIDEO = dedent(
    """
    Upscale and enhance video quality using professional AI. Increases resolution while preserving details. Can also interpolate frames for smoother motion.

    WHEN TO USE:
    - Improve quality of generated or existing videos
    - Prepare videos for large displays
    - Enhance low-resolution videos
    - Smooth out choppy motion with frame interpolation

    EFFICIENCY TIPS:
    - Use after generating videos that need higher resolution
    - Enable targetFps for frame interpolation to create smoother motion (e.g., convert 24fps to 60fps)
    - Higher upscaleFactor means larger file sizes and longer processing (can take several minutes)
    - Frame interpolation adds processing time but creates much smoother video
    """
).strip()

EXTRACT_METADATA = dedent(
    """
    Extract comprehensive metadata from media files (images, videos, audio). Analyzes dimensions, duration, bitrate, codec, format.

    WHEN TO USE:
    - Understanding file properties before processing
    - Validating media types and quality settings
    - Checking durations/dimensions for workflow planning

    EFFICIENCY TIPS:
    - Fast operation - use when needed for workflow validation
    - Returns detailed technical specifications as JSON
    - For videos: set extractFrames: true to get start/end thumbnails
    """
).strip()

MERGE_VIDEOS = dedent(
    """
    Concatenate multiple video files into single output. Combines separate video files with consistent formatting.

    WHEN TO USE:
    - Creating video compilations, combining clips, merging segmented content, montages
    - Need to concatenate 2 or more videos in specific sequence

    CRITICAL - ORDER PRESERVATION:
    - Array order = output video order (first URL in array = first video in output)
    - For conversations: Ensure videoUrls array is in DIALOGUE SEQUENCE, not completion order
    - Example conversation order: [personA_line1, personB_line1, personA_line2, personB_line2, ...]
    - For stories: [intro, middle, end] = story sequence in output
    - NEVER pass videos in completion order - ALWAYS pass in intended sequence order

    EFFICIENCY TIPS:
    - Fast, cheap operation - use liberally
    - Videos concatenated in exact array order
    - All input videos scaled/cropped to match output resolution
    - Specify targetFps for consistent frame rate across all clips
    """
).strip()

EXTRACT_FRAME = dedent(
    """
    Extract a single frame from a video as an image. Captures specific moments as high-quality still images.

    WHEN TO USE:
    - Creating video thumbnails, extracting key frames for analysis
    - Generating preview images or capturing specific moments
    - Feeding extracted frames to image-to-image or image-to-video tools

    EFFICIENCY TIPS:
    - Fast, cheap operation - use as needed
    - Choose frameType: 'first' (default), 'middle', or 'last'
    - Useful for chaining workflows: extract frame → modify with image-to-image → animate with image-to-video
    """
).strip()
