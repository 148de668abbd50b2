"""Shared fixtures: a renderer that records calls instead of drawing."""

import random

import pytest

from tilelab import Renderer


class RecordingRenderer(Renderer):
    def __init__(self):
        self.calls = []

    def draw_background(self, color):
        self.calls.append(("background", None, None, color))

    def draw_dot(self, center, diameter, color):
        self.calls.append(("dot", None, center, color))

    def draw_shadow(self, geom, origin, offset=(3, 3), color="#444444"):
        self.calls.append(("shadow", geom, origin, color))

    def draw_filled(self, geom, origin, fill, outline="#444444", width=2):
        self.calls.append(("filled", geom, origin, fill))

    def draw_outline(self, geom, origin, outline, width=3):
        self.calls.append(("outline", geom, origin, outline))

    def shape_calls(self, geom):
        return [c for c in self.calls if c[1] is geom]


@pytest.fixture
def recorder():
    return RecordingRenderer()


@pytest.fixture
def rng():
    return random.Random(1234)
