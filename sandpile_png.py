from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.colors import ListedColormap

log = logging.getLogger("sandpile")

RGBA = Tuple[int, int, int, int]

# ========================= Palette =========================

@dataclass(frozen=True)
class Palette:
    empty: RGBA = (0, 0, 0, 255)
    one: RGBA   = (64, 128, 0, 255)
    two: RGBA   = (118, 8, 170, 255)
    three: RGBA = (255, 214, 0, 255)

    def rgba_table(self) -> np.ndarray:
        return np.array([self.empty, self.one, self.two, self.three], dtype=np.uint8)


# ========================= Raster =========================

def to_rgba(cells, palette: Palette = Palette()) -> np.ndarray:
    """(H, W) chip counts in 0..3 -> (H, W, 4) uint8 image, one pixel per cell."""
    cells = np.asarray(cells)
    if cells.ndim != 2 or cells.size == 0:
        raise ValueError(f"expected a non-empty 2-D grid, got shape {cells.shape}")
    if cells.min() < 0 or cells.max() > 3:
        raise ValueError(f"raster cells must lie in 0..3, got range {cells.min()}..{cells.max()}")
    return palette.rgba_table()[cells]


def save_png(cells, path: Union[str, Path], palette: Palette = Palette()) -> Path:
    path = Path(path)
    img = to_rgba(cells, palette)
    plt.imsave(path, img, format="png")
    log.info(f"wrote {img.shape[1]}x{img.shape[0]} raster -> {path}")
    return path


# ========================= Preview =========================

def plot_sandpile(pile, out: Optional[Union[str, Path]] = None, show: bool = False,
                  palette: Palette = Palette()):
    cmap = ListedColormap(palette.rgba_table() / 255.0)
    fig, ax = plt.subplots(1, 1, figsize=(6.0, 6.0 * pile.height / max(pile.width, 1)),
                           constrained_layout=True)
    im = ax.imshow(pile.cells, cmap=cmap, vmin=-0.5, vmax=3.5, interpolation="nearest")
    ax.set_xticks([]); ax.set_yticks([])
    ax.set_title(f"{pile.topology.value} sandpile {pile.width}x{pile.height} "
                 f"(last topple: {pile.last_topple})")
    cbar = fig.colorbar(im, ax=ax, ticks=[0, 1, 2, 3], shrink=0.8)
    cbar.set_label("chips")
    if out:
        fig.savefig(out, dpi=200, bbox_inches="tight")
    if show:
        plt.show()
    plt.close(fig)
