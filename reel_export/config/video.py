"""
Configuration settings related to video export.

This module defines the quality presets, frame timing, the ordered list of
recording formats to negotiate, the MP4 transcode profile and the layout
constants used by the frame renderer.
"""
from .common import USER_RECORDING_FORMATS

# --- Quality Presets ---
# Width, height and target video bitrate (bps) for each export quality.
QUALITY_PRESETS = {
    "low": {"width": 640, "height": 360, "video_bitrate": 500_000},
    "medium": {"width": 1280, "height": 720, "video_bitrate": 1_500_000},
    "high": {"width": 1920, "height": 1080, "video_bitrate": 4_000_000},
}
DEFAULT_QUALITY = "high"

# --- Timing ---
DEFAULT_FPS = 30
DEFAULT_SLIDE_DURATION = 5.0  # seconds each slide (and the closing card) is held
MAX_SLIDE_DURATION = 60.0

# --- Recording Format Negotiation ---
# Ordered by preference. The first entry whose muxer and encoders are available
# in the loaded ffmpeg build is used. Native MP4 comes first so that the
# conversion stage is skipped whenever possible.
DEFAULT_RECORDING_FORMATS = [
    {
        "mime_type": "video/mp4;codecs=avc1,mp4a",
        "container": "mp4",
        "extension": "mp4",
        "video_codec": "libx264",
        "audio_codec": "aac",
    },
    {
        "mime_type": "video/webm;codecs=vp9,opus",
        "container": "webm",
        "extension": "webm",
        "video_codec": "libvpx-vp9",
        "audio_codec": "libopus",
    },
    {
        "mime_type": "video/webm;codecs=vp8,opus",
        "container": "webm",
        "extension": "webm",
        "video_codec": "libvpx",
        "audio_codec": "libopus",
    },
    {
        "mime_type": "video/webm",
        "container": "webm",
        "extension": "webm",
        "video_codec": "libvpx",
        "audio_codec": "libvorbis",
    },
]

# Built from encoders and a muxer that every ffmpeg build ships natively.
BASELINE_RECORDING_FORMAT = {
    "mime_type": "video/x-matroska",
    "container": "matroska",
    "extension": "mkv",
    "video_codec": "mpeg4",
    "audio_codec": "aac",
}

RECORDING_FORMATS = USER_RECORDING_FORMATS or DEFAULT_RECORDING_FORMATS

# Raw frames are piped to the recorder in this layout.
RAW_PIXEL_FORMAT = "rgb24"
OUTPUT_PIXEL_FORMAT = "yuv420p"

# --- MP4 Transcode Profile ---
MP4_MIME_TYPE = "video/mp4"
MP4_EXTENSION = "mp4"
TRANSCODE_VIDEO_CODEC = "libx264"
TRANSCODE_CRF = 23
TRANSCODE_PRESET = "fast"
TRANSCODE_AUDIO_CODEC = "aac"
TRANSCODE_AUDIO_BITRATE = "128k"
TRANSCODE_MOVFLAGS = "+faststart"  # moov atom first for progressive playback

# --- Frame Renderer Layout ---
BACKGROUND_COLOR = (0, 0, 0)
PLACEHOLDER_COLOR = (64, 106, 86)  # brand green, used when an image fails to load
MAX_FILL_RATIO = 0.9
CORNER_RADIUS = 24
CAPTION_BAND_COLOR = (0, 0, 0, 102)  # black at 40%
CAPTION_BAND_MAX_WIDTH_RATIO = 0.45
CAPTION_BAND_BOTTOM_MARGIN_RATIO = 0.08
CAPTION_PADDING = 24
TITLE_FONT_RATIO = 0.03  # relative to canvas height
DETAIL_FONT_RATIO = 0.02
DATE_TEXT_COLOR = (255, 255, 255, 179)
DESCRIPTION_TEXT_COLOR = (255, 255, 255, 153)

# --- Closing Card ---
CLOSING_BACKGROUND_COLOR = (242, 241, 229)
CLOSING_TITLE_COLOR = (64, 106, 86)
CLOSING_RULE_COLOR = (217, 198, 26)
CLOSING_SUBTITLE_COLOR = (74, 53, 82)
CLOSING_FOOTER_COLOR = (74, 53, 82)
CLOSING_TITLE = "YoursTruly"
CLOSING_SUBTITLE = "Document Your Life"
CLOSING_FOOTER = "yourstruly.love"

# Candidate TrueType fonts, tried in order before Pillow's bundled font.
FONT_CANDIDATES = (
    "DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "Arial.ttf",
    "/Library/Fonts/Arial.ttf",
    "C:\\Windows\\Fonts\\arial.ttf",
)
SERIF_FONT_CANDIDATES = (
    "DejaVuSerif-Italic.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSerif-Italic.ttf",
    "Georgia Italic.ttf",
    "/Library/Fonts/Georgia Italic.ttf",
    "C:\\Windows\\Fonts\\georgiai.ttf",
)

# --- Image Loading ---
IMAGE_REQUEST_TIMEOUT = 15  # seconds
IMAGE_PREFETCH_WORKERS = 4
