# byok/app/providers/catalog.py
"""
Closed set of video-generation providers and their capabilities.

Adding a provider means adding a ProviderId member and a PROVIDERS entry;
everything else (validation, the API catalog, the adapter registry) keys off
these two.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from byok.app.core.errors import ValidationError


class ProviderId(str, Enum):
    GOOGLE_VEO = "google-veo"
    META_MOVIEGEN = "meta-moviegen"
    RUNWAY_GEN3 = "runway-gen3"


class AspectRatio(str, Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    SQUARE = "1:1"


@dataclass(frozen=True)
class ProviderCapabilities:
    name: str
    description: str
    docs_url: str
    max_duration: int
    supported_aspect_ratios: Tuple[AspectRatio, ...]
    # None: every whole second from 1 to max_duration is accepted
    supported_durations: Optional[Tuple[int, ...]] = None

    @property
    def duration_options(self) -> Tuple[int, ...]:
        if self.supported_durations is not None:
            return self.supported_durations
        return tuple(range(1, self.max_duration + 1))

    @property
    def aspect_ratio_values(self) -> Tuple[str, ...]:
        return tuple(ratio.value for ratio in self.supported_aspect_ratios)


PROVIDERS = {
    ProviderId.GOOGLE_VEO: ProviderCapabilities(
        name="Google Veo 3.1 Fast",
        description="Google's Veo fast video generation model",
        docs_url="https://cloud.google.com/vertex-ai/docs/generative-ai/video/overview",
        max_duration=8,
        supported_aspect_ratios=(AspectRatio.LANDSCAPE, AspectRatio.PORTRAIT, AspectRatio.SQUARE),
        supported_durations=(4, 6, 8),
    ),
    ProviderId.META_MOVIEGEN: ProviderCapabilities(
        name="Meta Movie Gen",
        description="Meta's AI video generation model",
        docs_url="https://ai.meta.com/",
        max_duration=16,
        supported_aspect_ratios=(AspectRatio.LANDSCAPE, AspectRatio.PORTRAIT),
    ),
    ProviderId.RUNWAY_GEN3: ProviderCapabilities(
        name="Runway Gen-3",
        description="Runway's latest video generation model",
        docs_url="https://runwayml.com/",
        max_duration=10,
        supported_aspect_ratios=(AspectRatio.LANDSCAPE, AspectRatio.PORTRAIT, AspectRatio.SQUARE),
    ),
}


def parse_provider_id(value) -> ProviderId:
    """Coerce a raw identifier into a ProviderId or raise ValidationError."""
    if isinstance(value, ProviderId):
        return value
    try:
        return ProviderId(value)
    except ValueError:
        raise ValidationError(f"Unknown provider '{value}'.")


def get_capabilities(provider_id) -> ProviderCapabilities:
    return PROVIDERS[parse_provider_id(provider_id)]


def validate_settings(capabilities: ProviderCapabilities, duration, aspect_ratio) -> None:
    """
    Reject settings outside the provider's declared capability set.

    Values are never clamped: an out-of-range duration or an unsupported
    aspect ratio is a ValidationError.
    """
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        raise ValidationError("Duration must be a positive whole number of seconds.")

    if duration > capabilities.max_duration:
        raise ValidationError(
            f"{capabilities.name} supports at most {capabilities.max_duration} seconds."
        )

    if duration not in capabilities.duration_options:
        options = ", ".join(str(option) for option in capabilities.duration_options)
        raise ValidationError(
            f"{capabilities.name} supports durations of {options} seconds."
        )

    ratio = aspect_ratio.value if isinstance(aspect_ratio, AspectRatio) else aspect_ratio
    if ratio not in capabilities.aspect_ratio_values:
        ratios = ", ".join(capabilities.aspect_ratio_values)
        raise ValidationError(
            f"{capabilities.name} supports aspect ratios {ratios}."
        )
