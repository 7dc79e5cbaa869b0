from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List

from domain.models import GradientPair

RANDOM_GRADIENT = "random"
DEFAULT_FALLBACK_GRADIENT = "violet"


@dataclass(frozen=True)
class GradientPreset:
    name: str
    title: str
    start: str
    end: str

    def to_background(self) -> GradientPair:
        return GradientPair(start=self.start, end=self.end)


GRADIENT_PRESETS: Dict[str, GradientPreset] = {
    preset.name: preset
    for preset in (
        GradientPreset("blue", "Blue", "#4facfe", "#00f2fe"),
        GradientPreset("green-teal", "Green Teal", "#43e97b", "#38f9d7"),
        GradientPreset("pink-yellow", "Pink Yellow", "#fa709a", "#fee140"),
        GradientPreset("teal-purple", "Teal Purple", "#30cfd0", "#330867"),
        GradientPreset("soft-pink", "Soft Pink", "#ff9a9e", "#fad0c4"),
        GradientPreset("sky-blue", "Sky Blue", "#a1c4fd", "#c2e9fb"),
        GradientPreset("violet", "Violet", "#667eea", "#764ba2"),
        GradientPreset("pastel", "Pastel", "#fddb92", "#d1fdff"),
    )
}


def list_presets() -> List[GradientPreset]:
    return list(GRADIENT_PRESETS.values())


def resolve_gradient(name: str, rng: random.Random | None = None) -> GradientPair:
    key = str(name or "").strip().lower().replace("_", "-").replace(" ", "-")
    if key == RANDOM_GRADIENT:
        chooser = rng or random.Random()
        return chooser.choice(list_presets()).to_background()
    preset = GRADIENT_PRESETS.get(key)
    if preset is None:
        known = ", ".join([*GRADIENT_PRESETS, RANDOM_GRADIENT])
        msg = f"Unknown gradient preset {name!r}; expected one of: {known}"
        raise ValueError(msg)
    return preset.to_background()
