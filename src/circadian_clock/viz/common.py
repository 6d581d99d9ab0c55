from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.figure import Figure


def save_figure(path: Path, fig: Figure | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    figure = fig if fig is not None else plt.gcf()
    figure.tight_layout()
    figure.savefig(path)
    plt.close(figure)
    return path
