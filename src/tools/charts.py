"""
Chart Rendering

Renders ChartConfig descriptors to PNG files with matplotlib.
Output is written to the chart directory and also returned as bytes.
"""
import io
import re
import base64
from pathlib import Path
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union
from datetime import datetime
import logging

from config.chart_styles import ChartStyleConfig, get_chart_style
from src.tools.chart_generator import ChartConfig, ChartDataset

logger = logging.getLogger(__name__)

RGBA_RE = re.compile(r"rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+)\s*)?\)")
EMPTY_LABEL = "暂无数据"


@dataclass
class ChartOutput:
    """Container for a rendered chart."""
    chart_type: str
    title: str
    file_path: str
    file_bytes: bytes
    width: int
    height: int
    alt_text: str

    def to_base64(self) -> str:
        """Convert to base64 for embedding."""
        return base64.b64encode(self.file_bytes).decode('utf-8')


def to_mpl_color(color: Optional[str]) -> Optional[Union[str, tuple]]:
    """CSS-style rgb()/rgba() strings become matplotlib RGBA tuples; hex passes through."""
    if color is None:
        return None
    match = RGBA_RE.match(color.strip())
    if not match:
        return color
    r, g, b = (int(match.group(i)) / 255 for i in (1, 2, 3))
    alpha = float(match.group(4)) if match.group(4) is not None else 1.0
    return (r, g, b, alpha)


def _color_list(value, count: int, fallback: Sequence[str]) -> List:
    if value is None:
        return [to_mpl_color(fallback[i % len(fallback)]) for i in range(count)]
    if isinstance(value, str):
        return [to_mpl_color(value)] * count
    return [to_mpl_color(value[i % len(value)]) for i in range(count)]


class ChartRenderer:
    """
    Renders attendance chart descriptors.

    Uses matplotlib with the Agg backend so it works headless.
    """

    def __init__(self, output_dir: str = ".charts", style: Optional[ChartStyleConfig] = None):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.style = style or get_chart_style()

        try:
            import matplotlib
            matplotlib.use('Agg')  # Non-interactive backend
            import matplotlib.pyplot as plt
            self.plt = plt
            plt.rcParams.update(self.style.get_matplotlib_rcparams())
        except ImportError:
            raise ImportError("Install matplotlib: pip install matplotlib")

    def _save_chart(self, fig, title: str, chart_type: str) -> ChartOutput:
        """Save figure and return ChartOutput."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        safe_title = "".join(c if c.isalnum() else "_" for c in title)[:50]
        filename = f"{chart_type}_{safe_title}_{timestamp}.png"
        file_path = self.output_dir / filename

        buf = io.BytesIO()
        fig.savefig(buf, format='png', bbox_inches='tight', facecolor='white')
        file_bytes = buf.getvalue()
        file_path.write_bytes(file_bytes)

        width, height = fig.get_size_inches() * fig.dpi
        self.plt.close(fig)

        logger.info(f"Rendered {chart_type} chart '{title}' to {file_path}")
        return ChartOutput(
            chart_type=chart_type,
            title=title,
            file_path=str(file_path),
            file_bytes=file_bytes,
            width=int(width),
            height=int(height),
            alt_text=f"{chart_type}图表：{title}",
        )

    def render(self, config: ChartConfig) -> ChartOutput:
        """Render any ChartConfig. Unknown types are drawn as bar charts."""
        if config.type in ("pie", "doughnut"):
            return self.pie_chart(config)
        if config.type == "line":
            return self.line_chart(config)
        return self.bar_chart(config)

    def _new_figure(self):
        return self.plt.subplots(figsize=(self.style.default_width, self.style.default_height))

    def _finish(self, fig, ax, config: ChartConfig):
        ax.set_title(config.title, fontweight='bold', pad=self.style.title_pad)
        self.plt.tight_layout()
        return self._save_chart(fig, config.title, config.type)

    def pie_chart(self, config: ChartConfig) -> ChartOutput:
        """Pie or doughnut chart from the first dataset."""
        fig, ax = self._new_figure()
        dataset = config.datasets[0] if config.datasets else ChartDataset(label="", data=[])
        values = list(dataset.data)

        if sum(values) <= 0:
            ax.text(0.5, 0.5, EMPTY_LABEL, ha='center', va='center', fontsize=12, transform=ax.transAxes)
            ax.axis('off')
            return self._finish(fig, ax, config)

        colors = _color_list(dataset.background_color, len(values), self.style.colors.series)
        wedgeprops = {'width': 0.45} if config.type == "doughnut" else None
        wedges, _, autotexts = ax.pie(
            values,
            colors=colors,
            autopct=lambda pct: f"{pct:.1f}%" if pct > 0 else "",
            pctdistance=0.75,
            startangle=90,
            wedgeprops=wedgeprops,
        )
        for autotext in autotexts:
            autotext.set_fontsize(self.style.label_font_size)
            autotext.set_fontweight('bold')

        legend = config.options.get("legend", {})
        if legend.get("display", True):
            position = config.legend_position or "right"
            anchor = {"right": (1.0, 0.5), "left": (-0.1, 0.5), "top": (0.5, 1.1), "bottom": (0.5, -0.1)}
            ax.legend(wedges, config.labels, loc="center left" if position == "right" else "center",
                      bbox_to_anchor=anchor.get(position, (1.0, 0.5)))
        ax.axis('equal')
        return self._finish(fig, ax, config)

    def bar_chart(self, config: ChartConfig) -> ChartOutput:
        """Grouped bar chart; one group of bars per dataset."""
        fig, ax = self._new_figure()
        positions = range(len(config.labels))
        count = max(len(config.datasets), 1)
        width = 0.8 / count

        for i, dataset in enumerate(config.datasets):
            offsets = [p - 0.4 + width * (i + 0.5) for p in positions]
            colors = _color_list(dataset.background_color, len(dataset.data), self.style.colors.series)
            bars = ax.bar(offsets, dataset.data, width, color=colors, label=dataset.label)
            if self.style.show_data_labels:
                for bar, value in zip(bars, dataset.data):
                    ax.text(
                        bar.get_x() + bar.get_width() / 2,
                        bar.get_height(),
                        f"{value:g}",
                        ha='center',
                        va='bottom',
                        fontsize=self.style.label_font_size,
                    )

        ax.set_xticks(list(positions))
        ax.set_xticklabels(config.labels)
        if len(config.labels) > 5 or any(len(str(label)) > 6 for label in config.labels):
            self.plt.xticks(rotation=45, ha='right')
        if len(config.datasets) == 1:
            ax.set_ylabel(config.datasets[0].label)
        else:
            ax.legend()

        self._apply_y_scale(ax, config)
        return self._finish(fig, ax, config)

    def line_chart(self, config: ChartConfig) -> ChartOutput:
        """Line chart, one line per dataset, area filled with the background color."""
        fig, ax = self._new_figure()
        x = list(range(len(config.labels)))

        for dataset in config.datasets:
            line_color = to_mpl_color(dataset.border_color if isinstance(dataset.border_color, str) else None)
            ax.plot(x, dataset.data, color=line_color, linewidth=dataset.border_width,
                    marker='o', markersize=4, label=dataset.label)
            if isinstance(dataset.background_color, str):
                ax.fill_between(x, dataset.data, color=to_mpl_color(dataset.background_color))

        ax.set_xticks(x)
        ax.set_xticklabels(config.labels)
        if len(x) > 6:
            self.plt.xticks(rotation=45, ha='right')
        if len(config.datasets) == 1:
            ax.set_ylabel(config.datasets[0].label)
        else:
            ax.legend()

        self._apply_y_scale(ax, config)
        return self._finish(fig, ax, config)

    def _apply_y_scale(self, ax, config: ChartConfig):
        y_axis = config.options.get("scales", {}).get("y", {})
        bottom = 0 if y_axis.get("beginAtZero") else None
        top = y_axis.get("max")
        if bottom is not None or top is not None:
            ax.set_ylim(bottom=bottom, top=top)


# Factory function
def get_chart_renderer(output_dir: str = ".charts") -> ChartRenderer:
    """Get a chart renderer instance."""
    return ChartRenderer(output_dir)
