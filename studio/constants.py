"""
studio.constants
Artifact kinds, selector tables and option presets for the studio UI.

Selectors are only the first tier of element discovery; studio.resolver
falls back to text, structural and hover strategies when they stop matching.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List


class ArtifactKind(str, Enum):
    DECK = "deck"
    AUDIO = "audio"
    VIDEO = "video"
    INFOGRAPHIC = "infographic"


STUDIO_URL = "https://notebooklm.google.com"

# Default generation windows in seconds.
DEFAULT_TIMEOUTS: Dict[ArtifactKind, float] = {
    ArtifactKind.DECK: 180.0,
    ArtifactKind.AUDIO: 600.0,
    ArtifactKind.VIDEO: 900.0,
    ArtifactKind.INFOGRAPHIC: 180.0,
}

# The app sometimes serves files without an extension.
DEFAULT_EXTENSIONS: Dict[ArtifactKind, str] = {
    ArtifactKind.DECK: ".pdf",
    ArtifactKind.AUDIO: ".wav",
    ArtifactKind.VIDEO: ".mp4",
    ArtifactKind.INFOGRAPHIC: ".png",
}

# Rendered artifact items (one element per generated artifact).
ARTIFACT_SELECTORS: Dict[ArtifactKind, str] = {
    ArtifactKind.DECK: "button[aria-description='Slides']",
    ArtifactKind.AUDIO: "button[aria-description='Audio Overview']",
    ArtifactKind.VIDEO: "button[aria-description='Video']",
    ArtifactKind.INFOGRAPHIC: "button[aria-description='Infographic']",
}
ARTIFACT_CONTAINER_SELECTOR = ".artifact-item-button"
ARTIFACT_TITLE_SELECTOR = ".artifact-title"
ROTATING_ICON_SELECTOR = "mat-icon.rotate"
SHIMMER_CLASS_PREFIX = "shimmer"
GENERATING_MARKER = "generating"

# "Create" tiles, one per kind; each holds a generate button and an edit button.
CREATE_CONTAINER_SELECTOR = ".create-artifact-button-container"
CREATE_CONTAINER_LABELS: Dict[ArtifactKind, str] = {
    ArtifactKind.DECK: "Slide deck",
    ArtifactKind.AUDIO: "Audio Overview",
    ArtifactKind.VIDEO: "Video",
    ArtifactKind.INFOGRAPHIC: "Infographic",
}
EDIT_BUTTON_SELECTOR = "button.edit-button"

# Customize ("edit") action per kind, exact selectors only.
EDIT_SELECTORS: Dict[ArtifactKind, List[str]] = {
    ArtifactKind.DECK: [
        "button[aria-label='Customise slide deck']",
        "button[aria-label='Customize slide deck']",
        "button.edit-button[data-edit-button-type='8']",
    ],
    ArtifactKind.AUDIO: [
        "button[aria-label='Customise audio overview']",
        "button[aria-label='Customize audio overview']",
    ],
    ArtifactKind.VIDEO: [
        "button[aria-label='Customise video overview']",
        "button[aria-label='Customize video overview']",
    ],
    ArtifactKind.INFOGRAPHIC: [
        "button[aria-label='Customise infographic']",
        "button[aria-label='Customize infographic']",
    ],
}

# Visible text on the edit button, used by the text strategy.
EDIT_BUTTON_TEXTS: Dict[ArtifactKind, List[str]] = {
    ArtifactKind.DECK: ["slide"],
    ArtifactKind.AUDIO: ["audio"],
    ArtifactKind.VIDEO: ["video"],
    ArtifactKind.INFOGRAPHIC: ["infographic"],
}

# Dialog
DIALOG_SELECTOR = "mat-dialog-container"
DIALOG_KEYWORDS = ["customise", "customize"]
UPLOAD_DIALOG_MARKERS = ["add sources", "upload"]
OVERLAY_BACKDROP_SELECTOR = ".cdk-overlay-backdrop"
RADIO_SELECTOR = "mat-radio-button"
TOGGLE_SELECTOR = "mat-button-toggle"
DROPDOWN_SELECTOR = "mat-select"
DROPDOWN_OPTION_SELECTOR = "mat-option"
FORM_FIELD_SELECTOR = "mat-form-field"
SUBMIT_KEYWORD = "generate"
PRIMARY_BUTTON_SELECTORS = [
    "button.mat-primary",
    "button.mat-accent",
    "button[color='primary']",
    "button.mat-mdc-unelevated-button",
]
# Never clicked by the submit fallbacks.
EXCLUDED_ACTION_LABELS = ["cancel", "close", "insert", "submit", "save", "back"]

# Download menu
MORE_BUTTON_SELECTORS = [
    "button.artifact-more-button",
    "button[aria-label='More']",
    "button[aria-label='More options']",
]
MENU_ITEM_SELECTORS = [
    "[role='menuitem'][aria-label*='download' i]",
    "button[aria-label*='download' i]",
]
MENU_ITEM_TAGS = "[role='menuitem'], button, a"
DOWNLOAD_KEYWORD = "download"

# Partially written downloads.
PARTIAL_DOWNLOAD_SUFFIXES = (".crdownload", ".tmp", ".part", ".partial", ".download")

# Elements that only exist once the app has loaded a notebook.
APP_READY_SELECTORS = [
    CREATE_CONTAINER_SELECTOR,
    ".studio-panel",
    ".source-panel",
    "textarea.query-box-input",
    ".notebook-container",
    ARTIFACT_SELECTORS[ArtifactKind.DECK],
    ARTIFACT_SELECTORS[ArtifactKind.AUDIO],
]

# UI labels for option values
DECK_FORMAT_LABELS = {"detailed": "Detailed", "presenter": "Presenter"}
DECK_LENGTH_LABELS = {"short": "Short", "default": "Default", "long": "Long"}
AUDIO_FORMAT_LABELS = {
    "deep-dive": "Deep dive",
    "brief": "Brief",
    "critique": "Critique",
    "debate": "Debate",
}
VIDEO_FORMAT_LABELS = {"brief": "Brief", "explainer": "Explainer"}
VIDEO_THEME_LABELS = {
    "retro-90s": "Retro",
    "futuristic": "Futuristic",
    "corporate": "Corporate",
    "minimal": "Minimal",
}
INFOGRAPHIC_ORIENTATION_LABELS = {"square": "Square", "portrait": "Portrait", "landscape": "Landscape"}
INFOGRAPHIC_DETAIL_LABELS = {"concise": "Concise", "standard": "Standard", "detailed": "Detailed"}

DECK_AUDIENCE_PROMPTS = {
    "technical": (
        "Create a detailed technical presentation for engineers and developers. Focus on architecture, "
        "implementation details, technical specifications, and code examples where relevant."
    ),
    "investor": (
        "Create a compelling investor pitch deck. Focus on market opportunity, business model, "
        "competitive advantages, traction metrics, and financial projections."
    ),
    "customer": (
        "Create a customer-facing presentation that focuses on benefits and value proposition. "
        "Emphasize how the product solves problems, ease of use, and success stories."
    ),
    "executive": (
        "Create an executive summary presentation for C-level stakeholders. Focus on strategic value, "
        "ROI, key metrics, and high-level roadmap without technical details."
    ),
    "beginner": (
        "Create an introductory presentation for beginners with no prior knowledge. Cover fundamentals "
        "step-by-step with simple examples and clear explanations."
    ),
}

AUDIO_DEFAULT_LANGUAGE = "en-US"
LANGUAGE_DISPLAY_NAMES = {
    "en-US": "English (US)",
    "en-GB": "English (UK)",
    "en-AU": "English (Australia)",
    "es-ES": "Spanish (Spain)",
    "es-MX": "Spanish (Mexico)",
    "fr-FR": "French",
    "de-DE": "German",
    "it-IT": "Italian",
    "pt-BR": "Portuguese (Brazil)",
    "pt-PT": "Portuguese (Portugal)",
    "ja-JP": "Japanese",
    "ko-KR": "Korean",
    "zh-CN": "Chinese (Simplified)",
    "zh-TW": "Chinese (Traditional)",
    "ru-RU": "Russian",
    "ar-SA": "Arabic",
    "hi-IN": "Hindi",
    "nl-NL": "Dutch",
    "pl-PL": "Polish",
    "sv-SE": "Swedish",
}
