from __future__ import annotations

from dataclasses import dataclass

from chartserver.domain.engines import EngineGeneration, select_generation

# Plugin steps the rendering engine knows how to draw; other references are ignored.
ENGINE_FEATURES = frozenset(
    {
        "annotation",
        "background",
        "boxplot",
        "datalabels",
        "outlabels",
        "padBelowLegend",
        "radialGauge",
    }
)


@dataclass(frozen=True)
class EngineConfig:
    """Engine generation and feature set a renderer handle is built with."""

    generation: EngineGeneration
    version: str
    features: frozenset[str] = ENGINE_FEATURES

    @classmethod
    def for_version(cls, version: str | None) -> EngineConfig:
        generation = select_generation(version)
        return cls(generation=generation, version=version or generation.default_version)
