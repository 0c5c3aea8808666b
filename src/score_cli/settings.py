"""Processing settings, their ranges, defaults and profiles.

Settings are an immutable value: every job receives its own snapshot and the
pipeline never writes to it.  Values are checked when the object is built,
so anything that reaches :func:`score_cli.pipeline.process` is in range.
Out-of-range values are rejected, never clamped.
"""

import re
from dataclasses import dataclass, replace
from enum import Enum
from score_cli.errors import InvalidSettings

RGB = tuple[int, int, int]


class Algorithm(str, Enum):
    CLASSIC = "classic"
    ADAPTIVE = "adaptive"


class PaddingMode(str, Enum):
    UNIFORM = "uniform"
    AXIS = "axis"
    INDEPENDENT = "independent"


DEFAULT_THRESHOLDS = {
    Algorithm.ADAPTIVE: 60,
    Algorithm.CLASSIC: 140,
}

RANGES = {
    "scale_multiplier": (1.0, 3.0),
    "contrast_boost": (0, 60),
    "smoothness": (0, 20),
    "padding": (0, 300),
    "threshold": {
        Algorithm.ADAPTIVE: (0, 100),
        Algorithm.CLASSIC: (50, 220),
    },
}

SCALE_STEP = 0.5
WHITE: RGB = (255, 255, 255)

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")


def parse_hex_color(value: str) -> RGB:
    """Parse ``#RRGGBB`` (leading ``#`` optional) into an RGB triple."""
    m = _HEX_COLOR.match(value.strip())
    if not m:
        raise InvalidSettings(f"Invalid background colour {value!r}; expected #RRGGBB.")
    hex_digits = m.group(1)
    return (
        int(hex_digits[0:2], 16),
        int(hex_digits[2:4], 16),
        int(hex_digits[4:6], 16),
    )


def to_hex(color: RGB) -> str:
    return "#{:02X}{:02X}{:02X}".format(*color)


def _check_int(name: str, value, lo: int, hi: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidSettings(f"{name} must be an integer, got {value!r}.")
    if not lo <= value <= hi:
        raise InvalidSettings(f"{name} must be between {lo} and {hi}, got {value}.")


@dataclass(frozen=True)
class ProcessingSettings:
    algorithm: Algorithm = Algorithm.ADAPTIVE
    threshold: int = DEFAULT_THRESHOLDS[Algorithm.ADAPTIVE]
    contrast_boost: int = 20
    scale_multiplier: float = 2.0
    smoothness: int = 5
    auto_crop: bool = True
    padding_top: int = 50
    padding_right: int = 50
    padding_bottom: int = 50
    padding_left: int = 50
    background_color: RGB = WHITE
    is_transparent: bool = False

    def __post_init__(self) -> None:
        try:
            algorithm = Algorithm(self.algorithm)
        except ValueError:
            raise InvalidSettings(f"Unknown algorithm {self.algorithm!r}.") from None
        object.__setattr__(self, "algorithm", algorithm)

        lo, hi = RANGES["threshold"][algorithm]
        _check_int(f"threshold ({algorithm.value})", self.threshold, lo, hi)
        _check_int("contrast_boost", self.contrast_boost, *RANGES["contrast_boost"])
        _check_int("smoothness", self.smoothness, *RANGES["smoothness"])
        for side in ("top", "right", "bottom", "left"):
            _check_int(f"padding_{side}", getattr(self, f"padding_{side}"), *RANGES["padding"])

        scale = self.scale_multiplier
        lo_s, hi_s = RANGES["scale_multiplier"]
        if isinstance(scale, bool) or not isinstance(scale, (int, float)):
            raise InvalidSettings(f"scale_multiplier must be a number, got {scale!r}.")
        if not lo_s <= scale <= hi_s:
            raise InvalidSettings(
                f"scale_multiplier must be between {lo_s} and {hi_s}, got {scale}."
            )
        object.__setattr__(self, "scale_multiplier", float(scale))

        for name in ("auto_crop", "is_transparent"):
            if not isinstance(getattr(self, name), bool):
                raise InvalidSettings(f"{name} must be a boolean, got {getattr(self, name)!r}.")

        color = self.background_color
        if isinstance(color, str):
            color = parse_hex_color(color)
        color = tuple(color)
        if len(color) != 3:
            raise InvalidSettings(f"background_color must be an RGB triple, got {color!r}.")
        for channel in color:
            _check_int("background_color channel", channel, 0, 255)
        object.__setattr__(self, "background_color", color)

    @property
    def paddings(self) -> tuple[int, int, int, int]:
        """Margins as (top, right, bottom, left)."""
        return self.padding_top, self.padding_right, self.padding_bottom, self.padding_left

    def with_algorithm(self, algorithm: Algorithm) -> "ProcessingSettings":
        """Switch algorithm, resetting the threshold to that algorithm's default."""
        algorithm = Algorithm(algorithm)
        if algorithm is self.algorithm:
            return self
        return replace(self, algorithm=algorithm, threshold=DEFAULT_THRESHOLDS[algorithm])


def expand_padding(mode: PaddingMode, *values: int) -> tuple[int, int, int, int]:
    """Resolve linked margin values into (top, right, bottom, left).

    uniform:     one value for all four sides
    axis:        (vertical, horizontal), linking top/bottom and left/right
    independent: (top, right, bottom, left)
    """
    mode = PaddingMode(mode)
    expected = {PaddingMode.UNIFORM: 1, PaddingMode.AXIS: 2, PaddingMode.INDEPENDENT: 4}[mode]
    if len(values) != expected:
        raise InvalidSettings(
            f"{mode.value} padding takes {expected} value(s), got {len(values)}."
        )
    if mode is PaddingMode.UNIFORM:
        (v,) = values
        return v, v, v, v
    if mode is PaddingMode.AXIS:
        vertical, horizontal = values
        return vertical, horizontal, vertical, horizontal
    top, right, bottom, left = values
    return top, right, bottom, left


# ── Profiles ───────────────────────────────────────────────────────────────

PROFILES = {
    # Crisp strokes, 2x upsample.
    "standard": {
        "classic_threshold": 140,
        "contrast_boost": 20,
        "scale_multiplier": 2.0,
        "smoothness": 5,
    },
    # Softer edges for faint pencil and phone photos.
    "gentle": {
        "classic_threshold": 130,
        "contrast_boost": 15,
        "scale_multiplier": 1.5,
        "smoothness": 15,
    },
}

DEFAULT_PROFILE = "standard"


def default_settings(
    profile: str = DEFAULT_PROFILE,
    algorithm: Algorithm = Algorithm.ADAPTIVE,
) -> ProcessingSettings:
    """Return the default settings of *profile* for *algorithm*."""
    try:
        values = PROFILES[profile]
    except KeyError:
        raise InvalidSettings(
            f"Unknown profile {profile!r}. Choose from: {', '.join(PROFILES)}."
        ) from None
    algorithm = Algorithm(algorithm)
    if algorithm is Algorithm.CLASSIC:
        threshold = values["classic_threshold"]
    else:
        threshold = DEFAULT_THRESHOLDS[Algorithm.ADAPTIVE]
    return ProcessingSettings(
        algorithm=algorithm,
        threshold=threshold,
        contrast_boost=values["contrast_boost"],
        scale_multiplier=values["scale_multiplier"],
        smoothness=values["smoothness"],
    )
