"""Scene content payloads — one variant per scene type.

The timeline compiler never looks inside content; these types exist so the
rest of the application reads and writes explicit fields instead of an open
bag of optionals.  Keys that a variant does not know are kept in ``extra``
so a payload round-trips unchanged.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Type, Union

from backend.services.recording.types import ZoomPoint


def _wire_key(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@dataclass
class FeatureItem:
    icon: str = ""
    title: str = ""
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"icon": self.icon, "title": self.title, "description": self.description}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeatureItem":
        return cls(
            icon=str(data.get("icon", "")),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
        )


@dataclass
class StatItem:
    value: float = 0.0
    label: str = ""
    suffix: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"value": self.value, "label": self.label}
        if self.suffix is not None:
            out["suffix"] = self.suffix
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatItem":
        return cls(
            value=float(data.get("value", 0.0)),
            label=str(data.get("label", "")),
            suffix=data.get("suffix"),
        )


@dataclass
class _Content:
    """Shared (de)serialization: snake_case fields ↔ camelCase wire keys."""

    extra: Dict[str, Any] = field(default_factory=dict)

    # field name -> item type for list-of-object fields
    _nested: ClassVar[Dict[str, Type]] = {}

    @classmethod
    def _fields(cls) -> List[dataclasses.Field]:
        return [f for f in dataclasses.fields(cls) if f.name != "extra"]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.extra)
        for f in self._fields():
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name in self._nested:
                value = [item.to_dict() for item in value]
            out[_wire_key(f.name)] = value
        return out

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "_Content":
        data = dict(data or {})
        kwargs: Dict[str, Any] = {}
        for f in cls._fields():
            key = _wire_key(f.name)
            if key not in data:
                continue
            value = data.pop(key)
            if f.name in cls._nested and value is not None:
                item_type = cls._nested[f.name]
                value = [item_type.from_dict(item) for item in value]
            kwargs[f.name] = value
        return cls(extra=data, **kwargs)


@dataclass
class TextContent(_Content):
    """Headline-driven scenes: intro, tagline, value-prop, testimonial, cta, transition."""
    headline: Optional[str] = None
    subtext: Optional[str] = None
    image: Optional[str] = None
    icon: Optional[str] = None


@dataclass
class FeatureContent(_Content):
    headline: Optional[str] = None
    subtext: Optional[str] = None
    icon: Optional[str] = None
    features: Optional[List[FeatureItem]] = None

    _nested: ClassVar[Dict[str, Type]] = {"features": FeatureItem}


@dataclass
class StatsContent(_Content):
    headline: Optional[str] = None
    stats: Optional[List[StatItem]] = None

    _nested: ClassVar[Dict[str, Type]] = {"stats": StatItem}


@dataclass
class ScreenshotContent(_Content):
    screenshot_url: Optional[str] = None
    headline: Optional[str] = None
    subtext: Optional[str] = None


@dataclass
class RecordingContent(_Content):
    """A screen recording; ``zoom_points`` come from the zoom detector."""
    recording_id: Optional[str] = None
    recording_video_url: Optional[str] = None
    feature_name: Optional[str] = None
    description: Optional[str] = None
    mockup_frame: Optional[str] = None      # "browser" | "macbook" | "minimal"
    zoom_points: Optional[List[ZoomPoint]] = None

    _nested: ClassVar[Dict[str, Type]] = {"zoom_points": ZoomPoint}


SceneContent = Union[TextContent, FeatureContent, StatsContent, ScreenshotContent, RecordingContent]

# Keyed by SceneType.value; every scene type has exactly one variant
CONTENT_VARIANTS: Dict[str, Type[_Content]] = {
    "intro": TextContent,
    "feature": FeatureContent,
    "testimonial": TextContent,
    "cta": TextContent,
    "screenshot": ScreenshotContent,
    "recording": RecordingContent,
    "transition": TextContent,
    "stats": StatsContent,
    "tagline": TextContent,
    "value-prop": TextContent,
}


def parse_scene_content(scene_type: str, raw: Optional[Dict[str, Any]]) -> SceneContent:
    """Build the content variant for ``scene_type`` from a wire payload.

    Raises:
        ValueError: If ``scene_type`` is not a known scene type.
    """
    variant = CONTENT_VARIANTS.get(scene_type)
    if variant is None:
        raise ValueError(f"Unknown scene type: {scene_type!r}")
    if isinstance(raw, _Content):
        return raw  # type: ignore[return-value]
    return variant.from_dict(raw)  # type: ignore[return-value]
