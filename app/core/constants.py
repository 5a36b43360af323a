"""Application constants.

Contains URL patterns, per-platform estimates, and the viral score weights
and thresholds.
"""

from app.models.enums import ScopeLevel, SocialPlatform

# ---------------------------------------------------------------------------
# URL classification
# Each pattern captures the platform's own content id as group 1.  Patterns
# run against the URL with query string and trailing slash removed and are
# anchored at the start, so only the platform host itself matches.
# ---------------------------------------------------------------------------
PLATFORM_PATTERNS: dict[SocialPlatform, str] = {
    SocialPlatform.youtube: (
        r"^(?:https?://)?(?:www\.|m\.)?"
        r"(?:youtube\.com/(?:watch\?v=|shorts/)|youtu\.be/)([\w-]+)"
    ),
    SocialPlatform.instagram: (
        r"^(?:https?://)?(?:www\.)?instagram\.com/(?:[^/]+/)?reels?/([A-Za-z0-9_-]+)"
    ),
    SocialPlatform.tiktok: (
        r"^(?:https?://)?(?:www\.)?tiktok\.com/@[\w.-]+/video/(\d+)"
    ),
    SocialPlatform.twitter: (
        r"^(?:https?://)?(?:www\.)?(?:twitter\.com|x\.com)/\w+/status/(\d+)"
    ),
}

# Platforms with a full scrape + analysis pipeline
SUPPORTED_PLATFORMS: frozenset[SocialPlatform] = frozenset({SocialPlatform.instagram})

# Estimated seconds until a fresh analysis completes
PLATFORM_ESTIMATE_SECONDS: dict[SocialPlatform, int] = {
    SocialPlatform.instagram: 60,
    SocialPlatform.tiktok: 60,
    SocialPlatform.twitter: 60,
    SocialPlatform.youtube: 120,
}

INSTAGRAM_PROFILE_URL = "https://instagram.com/{handle}"
INSTAGRAM_REEL_URL = "https://www.instagram.com/reel/{shortcode}/"

# ---------------------------------------------------------------------------
# Viral score
# ---------------------------------------------------------------------------
WEIGHT_HOOK: float = 0.25
WEIGHT_TOPIC: float = 0.20
WEIGHT_PACING: float = 0.15
WEIGHT_VALUE_DELIVERY: float = 0.15
WEIGHT_SHAREABILITY: float = 0.15
WEIGHT_CTA: float = 0.10

GATE_THRESHOLD: int = 60
GATE_MULTIPLIER: float = 0.6

SCOPE_CONFIDENCE_THRESHOLD: int = 70
SCOPE_MULTIPLIERS: dict[ScopeLevel, float] = {
    ScopeLevel.local: 0.75,
    ScopeLevel.national: 0.9,
    ScopeLevel.global_: 1.0,
}

CTA_PENALTY_THRESHOLD: int = 90
CTA_PENALTY_SHAREABILITY_CEILING: int = 70
CTA_PENALTY_MULTIPLIER: float = 0.85

# Case-insensitive label fragments mapping LLM metric labels to the six
# canonical score inputs.  Keys are tried in order and a label feeds only the
# first key it matches, so "potential" counts as topic only when nothing else
# matches.
METRIC_LABEL_KEYWORDS: dict[str, tuple[str, ...]] = {
    "hook": ("hook",),
    "pacing": ("pacing",),
    "shareability": ("share",),
    "cta": ("cta", "call to action"),
    "value_delivery": ("value",),
    "topic": ("topic", "potential"),
}

# Language tag used for provider text that is always English
DEFAULT_CONTENT_LANGUAGE = "en"
