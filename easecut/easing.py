"""Easing curves used to warp clip time non-linearly.

Every easing maps output progress in [0, 1] to source progress.  Curves are
pure functions; overshooting families (back, elastic) may return values
outside [0, 1], which the timestamp calculator clamps.

Closed-form curves follow the usual easings.net formulas.  Arbitrary curves
come from ``bezier_easing``, which inverts x(t) of a CSS-style cubic Bezier.
"""

import math
from types import MappingProxyType
from typing import Callable

from easecut.errors import UnknownEasingError
from easecut.models import BezierCurveSpec

EasingFunction = Callable[[float], float]

# Solver limits for inverting x(t)
NEWTON_ITERATIONS = 8
NEWTON_MIN_SLOPE = 1e-3
BISECTION_ITERATIONS = 30
SOLVE_TOLERANCE = 1e-7


# ---------------------------------------------------------------------------
# Closed-form families
# ---------------------------------------------------------------------------

def linear(t: float) -> float:
    return t


def _power_in(n: int) -> EasingFunction:
    def ease(t: float) -> float:
        return t ** n
    return ease


def _power_out(n: int) -> EasingFunction:
    def ease(t: float) -> float:
        return 1 - (1 - t) ** n
    return ease


def _power_in_out(n: int) -> EasingFunction:
    def ease(t: float) -> float:
        if t < 0.5:
            return 2 ** (n - 1) * t ** n
        return 1 - (-2 * t + 2) ** n / 2
    return ease


def ease_in_sine(t: float) -> float:
    return 1 - math.cos(t * math.pi / 2)


def ease_out_sine(t: float) -> float:
    return math.sin(t * math.pi / 2)


def ease_in_out_sine(t: float) -> float:
    return -(math.cos(math.pi * t) - 1) / 2


def ease_in_expo(t: float) -> float:
    return 0.0 if t == 0 else 2 ** (10 * t - 10)


def ease_out_expo(t: float) -> float:
    return 1.0 if t == 1 else 1 - 2 ** (-10 * t)


def ease_in_out_expo(t: float) -> float:
    if t == 0:
        return 0.0
    if t == 1:
        return 1.0
    if t < 0.5:
        return 2 ** (20 * t - 10) / 2
    return (2 - 2 ** (-20 * t + 10)) / 2


def ease_in_circ(t: float) -> float:
    return 1 - math.sqrt(max(0.0, 1 - t * t))


def ease_out_circ(t: float) -> float:
    return math.sqrt(max(0.0, 1 - (t - 1) ** 2))


def ease_in_out_circ(t: float) -> float:
    if t < 0.5:
        return (1 - math.sqrt(max(0.0, 1 - (2 * t) ** 2))) / 2
    return (math.sqrt(max(0.0, 1 - (-2 * t + 2) ** 2)) + 1) / 2


_ELASTIC_C4 = (2 * math.pi) / 3
_ELASTIC_C5 = (2 * math.pi) / 4.5


def ease_in_elastic(t: float) -> float:
    if t == 0 or t == 1:
        return float(t)
    return -(2 ** (10 * t - 10)) * math.sin((10 * t - 10.75) * _ELASTIC_C4)


def ease_out_elastic(t: float) -> float:
    if t == 0 or t == 1:
        return float(t)
    return 2 ** (-10 * t) * math.sin((10 * t - 0.75) * _ELASTIC_C4) + 1


def ease_in_out_elastic(t: float) -> float:
    if t == 0 or t == 1:
        return float(t)
    if t < 0.5:
        return -(2 ** (20 * t - 10) * math.sin((20 * t - 11.125) * _ELASTIC_C5)) / 2
    return (2 ** (-20 * t + 10) * math.sin((20 * t - 11.125) * _ELASTIC_C5)) / 2 + 1


_BACK_C1 = 1.70158
_BACK_C2 = _BACK_C1 * 1.525
_BACK_C3 = _BACK_C1 + 1


def ease_in_back(t: float) -> float:
    return _BACK_C3 * t ** 3 - _BACK_C1 * t ** 2


def ease_out_back(t: float) -> float:
    return 1 + _BACK_C3 * (t - 1) ** 3 + _BACK_C1 * (t - 1) ** 2


def ease_in_out_back(t: float) -> float:
    if t < 0.5:
        return ((2 * t) ** 2 * ((_BACK_C2 + 1) * 2 * t - _BACK_C2)) / 2
    return ((2 * t - 2) ** 2 * ((_BACK_C2 + 1) * (t * 2 - 2) + _BACK_C2) + 2) / 2


def ease_out_bounce(t: float) -> float:
    n1 = 7.5625
    d1 = 2.75
    if t < 1 / d1:
        return n1 * t * t
    if t < 2 / d1:
        t -= 1.5 / d1
        return n1 * t * t + 0.75
    if t < 2.5 / d1:
        t -= 2.25 / d1
        return n1 * t * t + 0.9375
    t -= 2.625 / d1
    return n1 * t * t + 0.984375


def ease_in_bounce(t: float) -> float:
    return 1 - ease_out_bounce(1 - t)


def ease_in_out_bounce(t: float) -> float:
    if t < 0.5:
        return (1 - ease_out_bounce(1 - 2 * t)) / 2
    return (1 + ease_out_bounce(2 * t - 1)) / 2


# ---------------------------------------------------------------------------
# Cubic Bezier
# ---------------------------------------------------------------------------

def _coefficients(p1: float, p2: float) -> tuple[float, float, float]:
    """Polynomial coefficients of one Bezier axis: ((a*t + b)*t + c)*t."""
    c = 3.0 * p1
    b = 3.0 * (p2 - p1) - c
    a = 1.0 - c - b
    return a, b, c


def bezier_point(t: float, p1: float, p2: float) -> float:
    """Evaluate one axis of the curve at parameter t."""
    a, b, c = _coefficients(p1, p2)
    return ((a * t + b) * t + c) * t


def bezier_slope(t: float, p1: float, p2: float) -> float:
    a, b, c = _coefficients(p1, p2)
    return (3.0 * a * t + 2.0 * b) * t + c


def solve_bezier_t(x: float, p1x: float, p2x: float) -> float:
    """Find the curve parameter t in [0, 1] where x(t) == x.

    Newton-Raphson converges in a few steps on most curves.  When the slope
    gets too flat (extreme handles such as 0.85/0.15) it falls back to
    bisection, which always converges because x(t) is monotonic for handle
    x-coordinates inside [0, 1].
    """
    if x <= 0.0:
        return 0.0
    if x >= 1.0:
        return 1.0

    t = x
    for _ in range(NEWTON_ITERATIONS):
        err = bezier_point(t, p1x, p2x) - x
        if abs(err) < SOLVE_TOLERANCE:
            return t
        slope = bezier_slope(t, p1x, p2x)
        if abs(slope) < NEWTON_MIN_SLOPE:
            break
        t -= err / slope
        if not 0.0 <= t <= 1.0:
            break

    lo, hi = 0.0, 1.0
    t = x
    for _ in range(BISECTION_ITERATIONS):
        err = bezier_point(t, p1x, p2x) - x
        if abs(err) < SOLVE_TOLERANCE:
            break
        if err > 0:
            hi = t
        else:
            lo = t
        t = (lo + hi) / 2.0
    return t


def bezier_easing(p1x: float, p1y: float, p2x: float, p2y: float) -> EasingFunction:
    """Build an easing from CSS ``cubic-bezier(p1x, p1y, p2x, p2y)`` handles."""
    BezierCurveSpec(p1x, p1y, p2x, p2y).validate()

    if p1x == p1y and p2x == p2y:
        return linear

    def ease(x: float) -> float:
        if x <= 0.0:
            return 0.0
        if x >= 1.0:
            return 1.0
        return bezier_point(solve_bezier_t(x, p1x, p2x), p1y, p2y)

    ease.__name__ = f"cubic_bezier_{p1x}_{p1y}_{p2x}_{p2y}"
    return ease


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

BEZIER_PRESETS: MappingProxyType = MappingProxyType({
    # near-frozen ends with a very fast middle; hides hard cuts
    "dramaticSwoop": BezierCurveSpec(0.85, 0.0, 0.15, 1.0),
    "cinematic": BezierCurveSpec(0.7, 0.0, 0.3, 1.0),
    "ease": BezierCurveSpec(0.25, 0.1, 0.25, 1.0),
    "easeIn": BezierCurveSpec(0.42, 0.0, 1.0, 1.0),
    "easeOut": BezierCurveSpec(0.0, 0.0, 0.58, 1.0),
    "easeInOut": BezierCurveSpec(0.42, 0.0, 0.58, 1.0),
})


def _build_registry() -> MappingProxyType:
    table: dict[str, EasingFunction] = {"linear": linear}
    for n, family in ((2, "Quad"), (3, "Cubic"), (4, "Quart"), (5, "Quint")):
        table[f"easeIn{family}"] = _power_in(n)
        table[f"easeOut{family}"] = _power_out(n)
        table[f"easeInOut{family}"] = _power_in_out(n)
    table.update({
        "easeInSine": ease_in_sine,
        "easeOutSine": ease_out_sine,
        "easeInOutSine": ease_in_out_sine,
        "easeInExpo": ease_in_expo,
        "easeOutExpo": ease_out_expo,
        "easeInOutExpo": ease_in_out_expo,
        "easeInCirc": ease_in_circ,
        "easeOutCirc": ease_out_circ,
        "easeInOutCirc": ease_in_out_circ,
        "easeInElastic": ease_in_elastic,
        "easeOutElastic": ease_out_elastic,
        "easeInOutElastic": ease_in_out_elastic,
        "easeInBack": ease_in_back,
        "easeOutBack": ease_out_back,
        "easeInOutBack": ease_in_out_back,
        "easeInBounce": ease_in_bounce,
        "easeOutBounce": ease_out_bounce,
        "easeInOutBounce": ease_in_out_bounce,
    })
    for name, spec in BEZIER_PRESETS.items():
        table[name] = bezier_easing(*spec.as_tuple())
    return MappingProxyType(table)


EASINGS: MappingProxyType = _build_registry()


def list_easings() -> list[str]:
    return sorted(EASINGS)


def get_easing(name: str) -> EasingFunction:
    """Look up a named easing, raising UnknownEasingError for bad names."""
    try:
        return EASINGS[name]
    except KeyError:
        raise UnknownEasingError(name, list_easings()) from None


def is_monotonic(name: str) -> bool:
    """True for curves that never move backwards in source time."""
    return not any(tag in name for tag in ("Elastic", "Back", "Bounce"))
