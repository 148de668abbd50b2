"""
tilelab.py
==========

Generates a single square, seamlessly repeatable tile of flat "sticker"
style art and renders it to PNG: a solid background, a wrap-safe dot grid,
and a scattered arrangement of shapes (squares, triangles, semicircles,
ovals, squiggles, sine-wave bands, dot clusters, striped circles). Every
shape gets a flat fill or outline plus a small offset drop shadow, and is
drawn at all nine positions of the 3x3 tiling lattice so whatever crosses an
edge reappears on the opposite side.

Key features
------------
- Non-overlapping placement: each shape is reduced to a bounding circle and
  dropped at a random spot that clears every circle placed before it.
- Nine shape families, each with its own size sampler, bounding radius and
  outline builder, selected through dispatch tables keyed by ``ShapeFamily``.
- Three knobs: size scale (small/medium/large), shape count mode
  (fewer/usual/many) and fill probability.
- Deterministic output with a random seed.
- Drawing goes through a small ``Renderer`` interface; ``PillowRenderer``
  rasterises onto a Pillow image.

Quick start
-----------
>>> from tilelab import generate
>>> generate(out_path="tile.png", size_scale="large", count_mode="many", seed=7)
'tile.png'

>>> from tilelab import TileStudio
>>> studio = TileStudio(seed=3)
>>> studio.set_size_scale("small")
<SizeScale.SMALL: 'small'>
>>> layout = studio.trigger_regeneration()
>>> studio.image.size
(600, 600)

Command line
------------
$ python tilelab.py --out /tmp/tile.png --scale large --count many --seed 7

License: MIT
"""

import argparse
import dataclasses
import logging
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
Primitive = Tuple[str, List[Point]]


# ---------------------------- Constants -------------------------------------

TILE_SIZE = 600

PALETTE = (
    "#FF6EC7",  # neon pink
    "#70A1FF",  # sky blue
    "#A29BFE",  # lavender
    "#FFE66D",  # lemon yellow
    "#1ABC9C",  # turquoise
    "#FF3CAC",  # hot pink
    "#FFF200",  # bright yellow
    "#A0E7E5",  # aqua
    "#FF9F43",  # tangerine
    "#7BED9F",  # mint
    "#F8A5C2",  # blush
    "#5F27CD",  # violet
)

SHADOW_COLOR = "#444444"
SHADOW_OFFSET = (3, 3)
FILLED_OUTLINE_WIDTH = 2
OUTLINE_ONLY_WIDTH = 3
LINE_WIDTH = 4                 # squiggles and sine bands are strokes, not fills

PLACEMENT_ATTEMPTS = 10
PLACEMENT_BUFFER = 12.0        # never scaled
SAFETY_MARGIN = 10.0           # never scaled

DOT_GRID_SPACING = 40
DOT_DIAMETER_RANGE = (6.0, 9.0)
SIZE_JITTER = (0.96, 1.44)
FILL_PROBABILITY = 0.75
BAND_LINES = 3
BAND_GAP = 5.0


# ---------------------------- Utilities ------------------------------------

def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """Convert '#RRGGBB' or 'RRGGBB' to (r,g,b). Handles shorthand '#RGB' too."""
    h = hex_color.strip().lstrip("#")
    if len(h) == 3:
        h = "".join(c*2 for c in h)
    if len(h) != 6:
        raise ValueError(f"Invalid hex color: {hex_color!r}")
    return (int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16))


def rng_from_seed(seed: Optional[int]) -> random.Random:
    """Return a Random instance from seed (or system)."""
    r = random.Random()
    if seed is not None:
        r.seed(int(seed))
    else:
        r.seed()
    return r


def rotate_points(points: List[Point], angle_deg: float) -> List[Point]:
    a = math.radians(angle_deg)
    ca, sa = math.cos(a), math.sin(a)
    return [(x*ca - y*sa, x*sa + y*ca) for (x, y) in points]


def translate_points(points: List[Point], dx: float, dy: float) -> List[Point]:
    return [(x+dx, y+dy) for (x, y) in points]


def wrapped_origins(x: float, y: float, tile_size: float) -> List[Point]:
    """The nine lattice copies of (x, y): offsets {-W, 0, +W} on both axes."""
    return [
        (x + dx, y + dy)
        for dx in (-tile_size, 0, tile_size)
        for dy in (-tile_size, 0, tile_size)
    ]


# ---------------------------- Configuration ---------------------------------

class SizeScale(Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class CountMode(Enum):
    FEWER = "fewer"
    USUAL = "usual"
    MANY = "many"


SIZE_MULTIPLIERS = {
    SizeScale.SMALL: 0.75,
    SizeScale.MEDIUM: 1.0,
    SizeScale.LARGE: 1.3,
}

# None means every family takes part.
FAMILY_COUNTS = {
    CountMode.FEWER: 3,
    CountMode.USUAL: 6,
    CountMode.MANY: None,
}

DEFAULT_SIZE_SCALE = SizeScale.MEDIUM
DEFAULT_COUNT_MODE = CountMode.USUAL


def normalize_size_scale(value) -> SizeScale:
    """Map a user value onto ``SizeScale``; anything unknown becomes medium."""
    if isinstance(value, SizeScale):
        return value
    try:
        return SizeScale(str(value).strip().lower())
    except ValueError:
        logger.debug("Unknown size scale %r, using %s", value, DEFAULT_SIZE_SCALE.value)
        return DEFAULT_SIZE_SCALE


def normalize_count_mode(value) -> CountMode:
    """Map a user value onto ``CountMode``; anything unknown becomes usual."""
    if isinstance(value, CountMode):
        return value
    try:
        return CountMode(str(value).strip().lower())
    except ValueError:
        logger.debug("Unknown count mode %r, using %s", value, DEFAULT_COUNT_MODE.value)
        return DEFAULT_COUNT_MODE


@dataclass(frozen=True)
class GenerationConfig:
    tile_size: int = TILE_SIZE
    size_scale: SizeScale = DEFAULT_SIZE_SCALE
    count_mode: CountMode = DEFAULT_COUNT_MODE
    fill_prob: float = FILL_PROBABILITY
    palette: Tuple[str, ...] = PALETTE     # distinct colors; see distinct_colors()
    placement_attempts: int = PLACEMENT_ATTEMPTS

    @property
    def multiplier(self) -> float:
        return SIZE_MULTIPLIERS[self.size_scale]


# ---------------------------- Palette ---------------------------------------

def assign_palette(
    colors: Sequence[str],
    families: Sequence["ShapeFamily"],
    rng: random.Random,
) -> Dict[str, str]:
    """Shuffle ``colors`` and pop one per role: background, dots, then each family.

    Colors are drawn without replacement, so a palette shorter than
    ``len(families) + 2`` raises IndexError.
    """
    pool = list(colors)
    rng.shuffle(pool)
    roles = {"background": pool.pop(), "dots": pool.pop()}
    for family in families:
        roles[family.value] = pool.pop()
    return roles


def distinct_colors(colors: Sequence[str]) -> Tuple[str, ...]:
    """Drop repeats by RGB value, so '#fff' and '#FFFFFF' count once. Keeps first spelling."""
    seen = {}
    for c in colors:
        seen.setdefault(hex_to_rgb(c), c.strip())
    return tuple(seen.values())


def required_palette_size(count_mode: CountMode) -> int:
    n = FAMILY_COUNTS[count_mode]
    return (len(ShapeFamily) if n is None else n) + 2


# ---------------------------- Shape families --------------------------------

class ShapeFamily(Enum):
    SQUARE = "square"
    TRIANGLE = "triangle"
    ISO_TRIANGLE = "iso_triangle"
    SEMICIRCLE = "semicircle"
    OVAL = "oval"
    SQUIGGLE = "squiggle"
    SINE_WAVE = "sine_wave"
    DOT_GRID = "dot_grid"
    STRIPEY_CIRCLE = "stripey_circle"


# Back to front: wide filled shapes, then outlined/linear ones, textures last.
DRAW_ORDER = (
    ShapeFamily.OVAL,
    ShapeFamily.SQUARE,
    ShapeFamily.SEMICIRCLE,
    ShapeFamily.STRIPEY_CIRCLE,
    ShapeFamily.TRIANGLE,
    ShapeFamily.ISO_TRIANGLE,
    ShapeFamily.SINE_WAVE,
    ShapeFamily.SQUIGGLE,
    ShapeFamily.DOT_GRID,
)

# Inclusive ranges.
INSTANCE_COUNTS = {
    ShapeFamily.SQUARE: (2, 3),
    ShapeFamily.TRIANGLE: (3, 4),
    ShapeFamily.ISO_TRIANGLE: (2, 3),
    ShapeFamily.SEMICIRCLE: (3, 4),
    ShapeFamily.OVAL: (2, 3),
    ShapeFamily.SQUIGGLE: (3, 5),
    ShapeFamily.SINE_WAVE: (1, 2),
    ShapeFamily.DOT_GRID: (1, 2),
    ShapeFamily.STRIPEY_CIRCLE: (1, 2),
}

FILLABLE = frozenset({
    ShapeFamily.SQUARE,
    ShapeFamily.TRIANGLE,
    ShapeFamily.ISO_TRIANGLE,
    ShapeFamily.SEMICIRCLE,
    ShapeFamily.OVAL,
})
LINEAR = frozenset({ShapeFamily.SQUIGGLE, ShapeFamily.SINE_WAVE})


@dataclass
class ShapeGeometry:
    """Resolved parameters of one shape instance, centred on its own origin."""
    family: ShapeFamily
    dims: Dict[str, float]
    rotation: float = 0.0          # degrees
    filled: bool = True


def _size(base: float, rng: random.Random, scale: float) -> float:
    return base * rng.uniform(*SIZE_JITTER) * scale


def _sample_square(rng, scale):
    return {"side": _size(75, rng, scale)}


def _sample_triangle(rng, scale):
    return {"side": _size(90, rng, scale)}


def _sample_iso_triangle(rng, scale):
    return {"base": _size(70, rng, scale), "height": _size(90, rng, scale)}


def _sample_semicircle(rng, scale):
    return {"diameter": _size(90, rng, scale)}


def _sample_oval(rng, scale):
    return {"width": _size(90, rng, scale), "height": _size(55, rng, scale)}


def _sample_squiggle(rng, scale):
    return {
        "humps": rng.randint(3, 5),
        "spacing": _size(18, rng, scale),
        "amplitude": _size(13.5, rng, scale),
    }


def _sample_sine_wave(rng, scale):
    return {
        "humps": rng.randint(4, 6),
        "spacing": _size(40, rng, scale),
        "amplitude": _size(12, rng, scale),
    }


def _sample_dot_grid(rng, scale):
    return {
        "grid": rng.randint(3, 4),
        "spacing": _size(12, rng, scale),
        "dot": _size(5, rng, scale),
    }


def _sample_stripey_circle(rng, scale):
    return {"diameter": _size(80, rng, scale), "stripes": rng.randint(3, 5)}


SAMPLERS: Dict[ShapeFamily, Callable[[random.Random, float], Dict[str, float]]] = {
    ShapeFamily.SQUARE: _sample_square,
    ShapeFamily.TRIANGLE: _sample_triangle,
    ShapeFamily.ISO_TRIANGLE: _sample_iso_triangle,
    ShapeFamily.SEMICIRCLE: _sample_semicircle,
    ShapeFamily.OVAL: _sample_oval,
    ShapeFamily.SQUIGGLE: _sample_squiggle,
    ShapeFamily.SINE_WAVE: _sample_sine_wave,
    ShapeFamily.DOT_GRID: _sample_dot_grid,
    ShapeFamily.STRIPEY_CIRCLE: _sample_stripey_circle,
}


def sample_dims(family: ShapeFamily, rng: random.Random, scale: float = 1.0) -> Dict[str, float]:
    """Draw the size parameters of one instance. Counts are ints and never scaled."""
    return SAMPLERS[family](rng, scale)


def _wave_length(dims, divisor: float) -> float:
    return dims["humps"] * dims["spacing"] * 2 * math.pi / divisor


def _square_radius(d):
    return d["side"] * math.sqrt(2) / 2


def _triangle_radius(d):
    s = d["side"]
    h = s * math.sqrt(3) / 2
    return math.sqrt((s/2)**2 + (h/2)**2)


def _iso_triangle_radius(d):
    # full height: the apex sits a whole height above the mid-base origin
    return math.sqrt((d["base"]/2)**2 + d["height"]**2)


def _circle_radius(d):
    return d["diameter"] / 2


def _oval_radius(d):
    return math.sqrt((d["width"]/2)**2 + (d["height"]/2)**2)


def _squiggle_radius(d):
    length = _wave_length(d, 10)
    return math.sqrt((length/2)**2 + d["amplitude"]**2) + SAFETY_MARGIN


def _sine_wave_radius(d):
    length = _wave_length(d, 20)
    return math.sqrt((length/2)**2 + d["amplitude"]**2) + SAFETY_MARGIN


def _dot_grid_radius(d):
    return d["grid"] * d["spacing"] / 2 + SAFETY_MARGIN


RADII: Dict[ShapeFamily, Callable[[Dict[str, float]], float]] = {
    ShapeFamily.SQUARE: _square_radius,
    ShapeFamily.TRIANGLE: _triangle_radius,
    ShapeFamily.ISO_TRIANGLE: _iso_triangle_radius,
    ShapeFamily.SEMICIRCLE: _circle_radius,
    ShapeFamily.OVAL: _oval_radius,
    ShapeFamily.SQUIGGLE: _squiggle_radius,
    ShapeFamily.SINE_WAVE: _sine_wave_radius,
    ShapeFamily.DOT_GRID: _dot_grid_radius,
    ShapeFamily.STRIPEY_CIRCLE: _circle_radius,
}


def bounding_radius(family: ShapeFamily, dims: Dict[str, float]) -> float:
    """Radius of the circle around the shape's origin that encloses its silhouette."""
    return RADII[family](dims)


# ---------------------------- Outlines --------------------------------------

# Outline builders return primitives in local, unrotated coordinates:
#   ("polygon", pts)   closed filled region
#   ("polyline", pts)  open stroke
#   ("dot", [c])       single dot centred at c, sized by dims["dot"]
#   ("stripe", [a, b]) straight segment drawn in the outline color

def _sine_polyline(dims, divisor: float, dy: float = 0.0) -> List[Point]:
    length = _wave_length(dims, divisor)
    xs = np.arange(0.0, length, 1.0)
    ys = np.sin(2 * math.pi * xs / dims["spacing"]) * dims["amplitude"] + dy
    return list(zip((xs - length/2).tolist(), ys.tolist()))


def _arc_points(rx: float, ry: float, start: float, stop: float, n: int, endpoint=True) -> List[Point]:
    t = np.linspace(start, stop, n, endpoint=endpoint)
    return list(zip((rx * np.cos(t)).tolist(), (ry * np.sin(t)).tolist()))


def _square_outline(d):
    h = d["side"] / 2
    return [("polygon", [(-h, -h), (h, -h), (h, h), (-h, h)])]


def _triangle_outline(d):
    s = d["side"]
    h = math.sqrt(3) / 2 * s
    return [("polygon", [(-s/2, h/2), (s/2, h/2), (0.0, -h/2)])]


def _iso_triangle_outline(d):
    b, h = d["base"], d["height"]
    return [("polygon", [(-b/2, 0.0), (b/2, 0.0), (0.0, -h)])]


def _semicircle_outline(d):
    r = d["diameter"] / 2
    return [("polygon", _arc_points(r, r, 0.0, math.pi, 33))]


def _oval_outline(d):
    return [("polygon", _arc_points(d["width"]/2, d["height"]/2, 0.0, 2*math.pi, 48, endpoint=False))]


def _squiggle_outline(d):
    return [("polyline", _sine_polyline(d, 10))]


def _sine_wave_outline(d):
    first = -(BAND_LINES - 1) / 2 * BAND_GAP
    return [("polyline", _sine_polyline(d, 20, first + i*BAND_GAP)) for i in range(BAND_LINES)]


def _dot_grid_outline(d):
    n, sp = d["grid"], d["spacing"]
    offsets = [(i - (n - 1) / 2) * sp for i in range(n)]
    return [("dot", [(x, y)]) for x in offsets for y in offsets]


def _stripey_circle_outline(d):
    r = d["diameter"] / 2
    prims: List[Primitive] = [("polygon", _arc_points(r, r, 0.0, 2*math.pi, 48, endpoint=False))]
    n = int(d["stripes"])
    for i in range(1, n + 1):
        y = -r + 2 * r * i / (n + 1)
        half = math.sqrt(max(r*r - y*y, 0.0))
        prims.append(("stripe", [(-half, y), (half, y)]))
    return prims


OUTLINES: Dict[ShapeFamily, Callable[[Dict[str, float]], List[Primitive]]] = {
    ShapeFamily.SQUARE: _square_outline,
    ShapeFamily.TRIANGLE: _triangle_outline,
    ShapeFamily.ISO_TRIANGLE: _iso_triangle_outline,
    ShapeFamily.SEMICIRCLE: _semicircle_outline,
    ShapeFamily.OVAL: _oval_outline,
    ShapeFamily.SQUIGGLE: _squiggle_outline,
    ShapeFamily.SINE_WAVE: _sine_wave_outline,
    ShapeFamily.DOT_GRID: _dot_grid_outline,
    ShapeFamily.STRIPEY_CIRCLE: _stripey_circle_outline,
}


def shape_primitives(geom: ShapeGeometry) -> List[Primitive]:
    """Outline primitives of ``geom`` rotated about its origin."""
    return [(kind, rotate_points(pts, geom.rotation)) for kind, pts in OUTLINES[geom.family](geom.dims)]


# ---------------------------- Placement -------------------------------------

@dataclass
class PlacedShape:
    x: float
    y: float
    radius: float


def clears(
    x: float,
    y: float,
    radius: float,
    existing: Sequence[PlacedShape],
    buffer: float = PLACEMENT_BUFFER,
) -> bool:
    """True if a circle at (x, y) keeps ``buffer`` clearance from every placed circle.

    Distances are planar; opposite tile edges are not treated as neighbours.
    """
    for s in existing:
        if math.hypot(x - s.x, y - s.y) < radius + s.radius + buffer:
            return False
    return True


def try_place(
    radius: float,
    existing: List[PlacedShape],
    tile_size: float,
    rng: random.Random,
    attempts: int = PLACEMENT_ATTEMPTS,
    buffer: float = PLACEMENT_BUFFER,
) -> Optional[Point]:
    """Try to find a clear position; records and returns it, or None when every attempt collides."""
    for _ in range(attempts):
        x = rng.uniform(radius, tile_size - radius)
        y = rng.uniform(radius, tile_size - radius)
        if clears(x, y, radius, existing, buffer):
            existing.append(PlacedShape(x, y, radius))
            return (x, y)
    return None


def place(
    radius: float,
    existing: List[PlacedShape],
    tile_size: float,
    rng: random.Random,
    attempts: int = PLACEMENT_ATTEMPTS,
    buffer: float = PLACEMENT_BUFFER,
) -> Point:
    """Best-effort placement: a clear spot if one turns up, else anywhere on the tile.

    The fallback position is not recorded in ``existing`` and may overlap.
    """
    pos = try_place(radius, existing, tile_size, rng, attempts, buffer)
    if pos is not None:
        return pos
    logger.debug("No clear spot for radius %.1f after %d attempts", radius, attempts)
    return (rng.uniform(0, tile_size), rng.uniform(0, tile_size))


# ---------------------------- Rendering -------------------------------------

class Renderer:
    """Drawing surface the composer talks to. Coordinates are tile units."""

    def draw_background(self, color: str) -> None:
        raise NotImplementedError

    def draw_dot(self, center: Point, diameter: float, color: str) -> None:
        raise NotImplementedError

    def draw_shadow(
        self,
        geom: ShapeGeometry,
        origin: Point,
        offset: Point = SHADOW_OFFSET,
        color: str = SHADOW_COLOR,
    ) -> None:
        raise NotImplementedError

    def draw_filled(
        self,
        geom: ShapeGeometry,
        origin: Point,
        fill: str,
        outline: str = SHADOW_COLOR,
        width: int = FILLED_OUTLINE_WIDTH,
    ) -> None:
        raise NotImplementedError

    def draw_outline(
        self,
        geom: ShapeGeometry,
        origin: Point,
        outline: str,
        width: int = OUTLINE_ONLY_WIDTH,
    ) -> None:
        raise NotImplementedError


class PillowRenderer(Renderer):
    """Rasterises onto an RGB Pillow image; anything off-canvas is clipped."""

    def __init__(self, tile_size: int = TILE_SIZE):
        self.image = Image.new("RGB", (tile_size, tile_size), (255, 255, 255))
        self.draw = ImageDraw.Draw(self.image)

    def draw_background(self, color):
        w, h = self.image.size
        self.draw.rectangle([0, 0, w, h], fill=hex_to_rgb(color))

    def draw_dot(self, center, diameter, color):
        self._ellipse(center, diameter, hex_to_rgb(color))

    def draw_shadow(self, geom, origin, offset=SHADOW_OFFSET, color=SHADOW_COLOR):
        rgb = hex_to_rgb(color)
        ox, oy = origin[0] + offset[0], origin[1] + offset[1]
        for kind, pts in shape_primitives(geom):
            pts = translate_points(pts, ox, oy)
            if kind == "polygon":
                self.draw.polygon(pts, fill=rgb)
            elif kind == "polyline":
                self.draw.line(pts, fill=rgb, width=LINE_WIDTH, joint="curve")
            elif kind == "dot":
                self._ellipse(pts[0], geom.dims["dot"], rgb)
            # stripes sit inside their circle's shadow

    def draw_filled(self, geom, origin, fill, outline=SHADOW_COLOR, width=FILLED_OUTLINE_WIDTH):
        fill_rgb, outline_rgb = hex_to_rgb(fill), hex_to_rgb(outline)
        for kind, pts in shape_primitives(geom):
            pts = translate_points(pts, *origin)
            if kind == "polygon":
                self.draw.polygon(pts, fill=fill_rgb)
                self._loop(pts, outline_rgb, width)
            elif kind == "polyline":
                self.draw.line(pts, fill=fill_rgb, width=LINE_WIDTH, joint="curve")
            elif kind == "dot":
                self._ellipse(pts[0], geom.dims["dot"], fill_rgb)
            elif kind == "stripe":
                self.draw.line(pts, fill=outline_rgb, width=width)

    def draw_outline(self, geom, origin, outline, width=OUTLINE_ONLY_WIDTH):
        rgb = hex_to_rgb(outline)
        for kind, pts in shape_primitives(geom):
            pts = translate_points(pts, *origin)
            if kind == "polygon":
                self._loop(pts, rgb, width)
            elif kind == "polyline":
                self.draw.line(pts, fill=rgb, width=LINE_WIDTH, joint="curve")
            elif kind == "dot":
                self._ellipse(pts[0], geom.dims["dot"], rgb)
            elif kind == "stripe":
                self.draw.line(pts, fill=rgb, width=width)

    def _loop(self, pts, rgb, width):
        # Pillow polygon outline width support is limited; draw a closed polyline.
        self.draw.line(pts + [pts[0]], fill=rgb, width=width, joint="curve")

    def _ellipse(self, center, diameter, rgb):
        x, y = center
        r = diameter / 2
        self.draw.ellipse([x - r, y - r, x + r, y + r], fill=rgb)


# ---------------------------- Composer --------------------------------------

class ComposerState(Enum):
    IDLE = "idle"
    GENERATING = "generating"


@dataclass
class PlacedInstance:
    geometry: ShapeGeometry
    x: float
    y: float
    radius: float
    color: str
    fallback: bool = False     # position came from the exhausted-attempts fallback


@dataclass
class TileLayout:
    """Everything one generation pass decided."""
    roles: Dict[str, str]
    families: List[ShapeFamily]
    counts: Dict[ShapeFamily, int]
    instances: List[PlacedInstance] = field(default_factory=list)


def choose_families(mode: CountMode, rng: random.Random) -> List[ShapeFamily]:
    families = list(ShapeFamily)
    rng.shuffle(families)
    n = FAMILY_COUNTS[mode]
    return families if n is None else families[:n]


def draw_dot_grid(renderer: Renderer, color: str, tile_size: int, rng: random.Random) -> None:
    """Regular dot grid one cell past every edge, each dot drawn at the nine lattice offsets."""
    diameter = rng.uniform(*DOT_DIAMETER_RANGE)
    for gx in range(-DOT_GRID_SPACING, tile_size + 2*DOT_GRID_SPACING, DOT_GRID_SPACING):
        for gy in range(-DOT_GRID_SPACING, tile_size + 2*DOT_GRID_SPACING, DOT_GRID_SPACING):
            for origin in wrapped_origins(gx, gy, tile_size):
                renderer.draw_dot(origin, diameter, color)


def draw_wrapped(renderer: Renderer, inst: PlacedInstance, tile_size: int) -> None:
    geom = inst.geometry
    for origin in wrapped_origins(inst.x, inst.y, tile_size):
        renderer.draw_shadow(geom, origin)
        if geom.filled:
            renderer.draw_filled(geom, origin, inst.color)
        elif geom.family in LINEAR:
            renderer.draw_outline(geom, origin, inst.color, width=LINE_WIDTH)
        else:
            renderer.draw_outline(geom, origin, inst.color)


class TileComposer:
    """Runs generation passes; holds the placement list of the current pass."""

    def __init__(self):
        self.state = ComposerState.IDLE
        self.placed: List[PlacedShape] = []

    def generate(self, config: GenerationConfig, renderer: Renderer, rng: random.Random) -> TileLayout:
        if self.state is ComposerState.GENERATING:
            raise RuntimeError("A generation pass is already running")
        self.state = ComposerState.GENERATING
        self.placed = []
        try:
            return self._compose(config, renderer, rng)
        finally:
            self.state = ComposerState.IDLE

    def _compose(self, config, renderer, rng):
        W = config.tile_size
        families = choose_families(config.count_mode, rng)
        roles = assign_palette(config.palette, families, rng)

        renderer.draw_background(roles["background"])
        draw_dot_grid(renderer, roles["dots"], W, rng)

        counts = {f: rng.randint(*INSTANCE_COUNTS[f]) for f in families}
        layout = TileLayout(roles=roles, families=families, counts=counts)

        for family in DRAW_ORDER:
            if family not in counts:
                continue
            for _ in range(counts[family]):
                dims = sample_dims(family, rng, config.multiplier)
                radius = bounding_radius(family, dims)
                n_before = len(self.placed)
                pos = place(radius, self.placed, W, rng, attempts=config.placement_attempts)
                fallback = len(self.placed) == n_before
                if fallback:
                    logger.debug("Overlap allowed for %s (radius %.1f)", family.value, radius)
                rotation = rng.uniform(0, 360)
                if family in FILLABLE:
                    filled = rng.random() < config.fill_prob
                else:
                    filled = family not in LINEAR
                inst = PlacedInstance(
                    geometry=ShapeGeometry(family, dims, rotation, filled),
                    x=pos[0], y=pos[1], radius=radius,
                    color=roles[family.value], fallback=fallback,
                )
                draw_wrapped(renderer, inst, W)
                layout.instances.append(inst)

        logger.info(
            "Composed tile: %d families, %d shapes (%d unplaced)",
            len(families), len(layout.instances),
            sum(1 for i in layout.instances if i.fallback),
        )
        return layout


class TileStudio:
    """Caller-facing knobs around a composer, a seeded RNG and the current config."""

    def __init__(self, config: Optional[GenerationConfig] = None, seed: Optional[int] = None):
        self.config = config or GenerationConfig()
        self.rng = rng_from_seed(seed)
        self.composer = TileComposer()
        self.image: Optional[Image.Image] = None
        self.last_layout: Optional[TileLayout] = None

    def set_size_scale(self, value) -> SizeScale:
        scale = normalize_size_scale(value)
        self.config = dataclasses.replace(self.config, size_scale=scale)
        return scale

    def set_shape_count_mode(self, value) -> CountMode:
        mode = normalize_count_mode(value)
        self.config = dataclasses.replace(self.config, count_mode=mode)
        return mode

    def trigger_regeneration(self, renderer: Optional[Renderer] = None) -> TileLayout:
        """Run one pass with the current config.

        Without a renderer the tile is drawn by a fresh ``PillowRenderer`` and
        kept on ``self.image``.
        """
        if renderer is None:
            renderer = PillowRenderer(self.config.tile_size)
            self.image = renderer.image
        self.last_layout = self.composer.generate(self.config, renderer, self.rng)
        return self.last_layout


# ---------------------------- High-level API --------------------------------

def generate(
    out_path: str,
    tile_size: int = TILE_SIZE,
    size_scale: str = "medium",
    count_mode: str = "usual",
    fill_prob: float = FILL_PROBABILITY,
    palette: Optional[Sequence[str]] = None,
    seed: Optional[int] = None,
) -> str:
    """High-level convenience. Returns the out_path after saving."""
    config = GenerationConfig(
        tile_size=tile_size,
        size_scale=normalize_size_scale(size_scale),
        count_mode=normalize_count_mode(count_mode),
        fill_prob=fill_prob,
        palette=distinct_colors(palette) if palette else PALETTE,
    )
    studio = TileStudio(config=config, seed=seed)
    studio.trigger_regeneration()
    studio.image.save(out_path, format="PNG", optimize=True)
    return out_path


# ---------------------------- CLI -------------------------------------------

def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Generate a seamless tile of flat geometric art")
    ap.add_argument("--out", required=True, help="Output PNG path")
    ap.add_argument("--size", type=int, default=TILE_SIZE, help="Tile side in pixels")
    ap.add_argument("--scale", default="medium", help="small, medium or large")
    ap.add_argument("--count", default="usual", help="fewer, usual or many shape families")
    ap.add_argument("--fill-prob", type=float, default=FILL_PROBABILITY,
                    help="Chance a fillable shape is filled instead of outlined")
    ap.add_argument("--palette", default=None,
                    help="Comma-separated hex colors (default: built-in 12 color palette)")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("-v", "--verbose", action="store_true", help="Log placement details")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    palette = None
    if args.palette:
        palette = distinct_colors(c for c in args.palette.split(",") if c.strip())
        needed = required_palette_size(normalize_count_mode(args.count))
        if len(palette) < needed:
            raise SystemExit(f"--palette needs at least {needed} distinct colors for --count {args.count}")

    out = generate(
        out_path=args.out, tile_size=args.size,
        size_scale=args.scale, count_mode=args.count,
        fill_prob=args.fill_prob, palette=palette, seed=args.seed,
    )
    print(out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
