from __future__ import annotations
import matplotlib.pyplot as plt

# line styles shared by every observer figure: reference is dashed, estimates solid
TRACE_STYLE = {
    "true": dict(color="black", linestyle="--", linewidth=1.2),
    "sensorless": dict(color="tab:blue"),
    "sensored": dict(color="tab:orange", linestyle=":"),
    "error": dict(color="tab:red", linewidth=1.0),
}

_REPORT_RC = {
    "figure.facecolor": "white",
    "axes.facecolor": "white",
    "savefig.facecolor": "white",
    "axes.grid": True,
    "grid.color": "#cccccc",
    "grid.alpha": 0.6,
    "font.size": 10,
    "legend.fontsize": 9,
    "legend.loc": "best",
    "lines.linewidth": 1.6,
}


def apply_report_style() -> None:
    """Light report look; grids are on by default."""
    plt.rcParams.update(_REPORT_RC)


def label_axis(ax, ylabel: str, legend: bool = True) -> None:
    ax.set_ylabel(ylabel)
    if legend and ax.get_legend_handles_labels()[0]:
        ax.legend()


def save_figure(fig, path_no_ext: str, dpi: int = 160) -> None:
    """Write PNG and SVG next to each other, then release the figure."""
    for ext, kw in ((".png", {"dpi": dpi}), (".svg", {})):
        fig.savefig(path_no_ext + ext, bbox_inches="tight", **kw)
    plt.close(fig)
