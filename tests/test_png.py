import matplotlib.pyplot as plt
import numpy as np
import pytest

from glyphs import parse_glyphs, render_glyphs
from sandpile import Sandpile
from sandpile_png import Palette, plot_sandpile, save_png, to_rgba
from topple import Topology

COLORS = [[0, 0, 0, 255], [64, 128, 0, 255], [118, 8, 170, 255], [255, 214, 0, 255]]


def test_palette_table():
    table = Palette().rgba_table()
    assert table.dtype == np.uint8
    assert table.tolist() == COLORS


def test_to_rgba():
    img = to_rgba([[0, 1, 2], [3, 2, 1]])
    assert img.shape == (2, 3, 4)
    assert img[1, 0].tolist() == COLORS[3]
    assert img[0, 2].tolist() == COLORS[2]


@pytest.mark.parametrize("bad", [[[0, 4]], [[-1, 0]], [], [1, 2]])
def test_to_rgba_rejects_bad_grids(bad):
    with pytest.raises(ValueError):
        to_rgba(bad)


def test_save_png_one_pixel_per_cell(tmp_path):
    pile = Sandpile.neutral(Topology.FINITE, (3, 2))
    out = save_png(pile.cells, tmp_path / "neutral.png")
    img = plt.imread(out)
    assert img.shape == (2, 3, 4)
    got = np.rint(img * 255).astype(int)
    expected = np.array(COLORS)[np.array(pile.to_grid())]
    assert np.array_equal(got, expected)


def test_plot_sandpile_writes_figure(tmp_path):
    pile = Sandpile.neutral(Topology.TOROIDAL, (5, 4))
    out = tmp_path / "preview.png"
    plot_sandpile(pile, out=out)
    assert out.exists() and out.stat().st_size > 0


def test_glyph_round_trip_and_clamp():
    assert parse_glyphs(" .:&#\n") == [[0, 1, 2, 3, 4]]
    assert render_glyphs([[0, 1, 2, 3, 4, 9]]) == " .:&##\n"
