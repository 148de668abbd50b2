"""Tests for the Pillow renderer, the high-level generate() and the CLI."""

import random

import pytest
from PIL import Image

import tilelab
from tilelab import (
    PALETTE,
    PillowRenderer,
    PlacedInstance,
    Renderer,
    ShapeFamily,
    ShapeGeometry,
    draw_wrapped,
    hex_to_rgb,
)

W = 600
SQUARE = ShapeGeometry(ShapeFamily.SQUARE, {"side": 20.0}, rotation=0.0, filled=True)


# ── hex_to_rgb ───────────────────────────────────────────────────────────────


class TestHexToRgb:
    def test_long_form(self):
        assert hex_to_rgb("#FF6EC7") == (255, 110, 199)

    def test_short_form(self):
        assert hex_to_rgb("#fff") == (255, 255, 255)

    def test_invalid(self):
        with pytest.raises(ValueError):
            hex_to_rgb("#12345")


# ── PillowRenderer ───────────────────────────────────────────────────────────


class TestPillowRenderer:
    def test_base_renderer_is_abstract(self):
        with pytest.raises(NotImplementedError):
            Renderer().draw_background("#000000")

    def test_background(self):
        r = PillowRenderer(W)
        r.draw_background("#1ABC9C")
        assert r.image.size == (W, W)
        assert r.image.getpixel((0, 0)) == (26, 188, 156)
        assert r.image.getpixel((W - 1, W - 1)) == (26, 188, 156)

    def test_shadow_sits_under_offset_corner(self):
        r = PillowRenderer(W)
        r.draw_background("#FFFFFF")
        r.draw_shadow(SQUARE, (50, 50))
        r.draw_filled(SQUARE, (50, 50), "#FF0000")
        assert r.image.getpixel((50, 50)) == (255, 0, 0)
        assert r.image.getpixel((62, 62)) == (68, 68, 68)
        assert r.image.getpixel((30, 30)) == (255, 255, 255)

    def test_outline_only_leaves_interior(self):
        r = PillowRenderer(W)
        r.draw_background("#FFFFFF")
        geom = ShapeGeometry(ShapeFamily.SQUARE, {"side": 60.0}, filled=False)
        r.draw_outline(geom, (100, 100), "#0000FF")
        assert r.image.getpixel((100, 100)) == (255, 255, 255)
        assert r.image.getpixel((70, 100)) == (0, 0, 255)

    def test_dot(self):
        r = PillowRenderer(W)
        r.draw_dot((10, 10), 8, "#FFF200")
        assert r.image.getpixel((10, 10)) == (255, 242, 0)

    def test_wrapped_copy_reappears_on_opposite_edge(self):
        r = PillowRenderer(W)
        r.draw_background("#FFFFFF")
        geom = ShapeGeometry(ShapeFamily.SQUARE, {"side": 40.0}, filled=True)
        inst = PlacedInstance(geometry=geom, x=595, y=300, radius=28.3, color="#70A1FF")
        draw_wrapped(r, inst, W)
        assert r.image.getpixel((590, 300)) == (112, 161, 255)
        assert r.image.getpixel((5, 300)) == (112, 161, 255)

    @pytest.mark.parametrize("family", list(ShapeFamily))
    def test_every_family_draws(self, family):
        dims = tilelab.sample_dims(family, random.Random(0))
        geom = ShapeGeometry(family, dims, rotation=45.0, filled=family not in tilelab.LINEAR)
        r = PillowRenderer(200)
        r.draw_background("#FFFFFF")
        r.draw_shadow(geom, (100, 100))
        if geom.filled:
            r.draw_filled(geom, (100, 100), "#FF0000")
        else:
            r.draw_outline(geom, (100, 100), "#FF0000", width=tilelab.LINE_WIDTH)
        colors = {c for _, c in r.image.getcolors(maxcolors=200 * 200)}
        assert (255, 0, 0) in colors


# ── generate / CLI ───────────────────────────────────────────────────────────


class TestGenerate:
    def test_writes_png(self, tmp_path):
        out = tmp_path / "tile.png"
        assert tilelab.generate(str(out), seed=1) == str(out)
        with Image.open(out) as im:
            assert im.size == (W, W)
            assert im.format == "PNG"

    def test_background_from_palette(self, tmp_path):
        out = tmp_path / "tile.png"
        tilelab.generate(str(out), tile_size=300, count_mode="fewer", seed=5)
        with Image.open(out) as im:
            corner = im.convert("RGB").getpixel((20, 20))
        assert corner in {hex_to_rgb(c) for c in PALETTE} | {(68, 68, 68)}

    def test_unknown_knobs_fall_back(self, tmp_path):
        out = tmp_path / "tile.png"
        tilelab.generate(str(out), size_scale="gigantic", count_mode="bazillion", seed=2)
        assert out.exists()

    def test_duplicate_palette_colors_are_merged(self, tmp_path, monkeypatch):
        seen = []
        real = tilelab.TileStudio.__init__

        def spy(self, config=None, seed=None):
            seen.append(config)
            real(self, config=config, seed=seed)

        monkeypatch.setattr(tilelab.TileStudio, "__init__", spy)
        palette = list(PALETTE[:5]) + ["#000000"] * 7
        tilelab.generate(str(tmp_path / "tile.png"), count_mode="fewer", palette=palette, seed=1)
        assert seen[0].palette == tuple(PALETTE[:5]) + ("#000000",)


class TestCli:
    def test_main(self, tmp_path, capsys):
        out = tmp_path / "cli.png"
        rc = tilelab.main(["--out", str(out), "--scale", "large", "--count", "many", "--seed", "3"])
        assert rc == 0
        assert out.exists()
        assert capsys.readouterr().out.strip() == str(out)

    def test_custom_palette(self, tmp_path):
        out = tmp_path / "cli.png"
        palette = ",".join(PALETTE[:5])
        rc = tilelab.main(["--out", str(out), "--count", "fewer", "--palette", palette, "--size", "200"])
        assert rc == 0

    def test_palette_too_small(self, tmp_path):
        out = tmp_path / "cli.png"
        with pytest.raises(SystemExit):
            tilelab.main(["--out", str(out), "--count", "many", "--palette", "#000,#fff,#f00"])
        assert not out.exists()

    def test_duplicate_colors_do_not_count(self, tmp_path):
        out = tmp_path / "cli.png"
        palette = ",".join(["#000000"] * 10)
        with pytest.raises(SystemExit):
            tilelab.main(["--out", str(out), "--count", "fewer", "--palette", palette])

    def test_short_and_long_hex_are_one_color(self, tmp_path):
        out = tmp_path / "cli.png"
        palette = ",".join(PALETTE[:3] + ("#fff", "#FFFFFF"))
        with pytest.raises(SystemExit):
            tilelab.main(["--out", str(out), "--count", "fewer", "--palette", palette])
        assert not out.exists()
