"""
Attendance Chart and Workbook Styling

Centralized palette and typography for rendered charts and workbooks.
Status colors match the labels used in the generated sheets.
"""
from dataclasses import dataclass, field
from typing import List, Dict, Optional


@dataclass
class ColorPalette:
    """Attendance color configuration."""
    # Status colors
    normal: str = "#4CAF50"            # Green
    late: str = "#FF9800"              # Orange
    early_leave: str = "#FFC107"       # Amber
    absent: str = "#F44336"            # Red
    leave: str = "#9C27B0"             # Purple
    overtime: str = "#2196F3"          # Blue

    # UI colors
    primary: str = "#1976D2"
    secondary: str = "#424242"
    success: str = "#388E3C"
    warning: str = "#F57C00"
    error: str = "#D32F2F"
    info: str = "#0288D1"

    # Background colors
    header_bg: str = "#4472C4"
    alt_row_bg: str = "#F2F2F2"

    # Text colors
    text_light: str = "#FFFFFF"
    text_dark: str = "#212121"

    # Chart series (ordered)
    series: List[str] = field(default_factory=lambda: [
        "#1976D2",
        "#4CAF50",
        "#FF9800",
        "#F44336",
        "#9C27B0",
        "#0288D1",
    ])


@dataclass
class Typography:
    """Font configuration. CJK-capable fonts first so Chinese labels render."""
    family: str = "Microsoft YaHei"
    fallbacks: List[str] = field(default_factory=lambda: [
        "SimHei",
        "PingFang SC",
        "Noto Sans CJK SC",
        "WenQuanYi Zen Hei",
        "Arial Unicode MS",
    ])
    title_size: int = 14
    header_size: int = 12
    body_size: int = 11
    small_size: int = 10

    title_weight: str = "bold"


@dataclass
class ChartStyleConfig:
    """Complete chart configuration."""
    colors: ColorPalette = field(default_factory=ColorPalette)
    typography: Typography = field(default_factory=Typography)

    # Figure dimensions (inches)
    default_width: float = 10
    default_height: float = 6
    dpi: int = 150

    show_gridlines: bool = False
    show_data_labels: bool = True
    label_font_size: int = 9

    title_pad: int = 16

    def get_matplotlib_rcparams(self) -> Dict:
        """Get matplotlib rcParams for consistent styling."""
        return {
            'font.family': 'sans-serif',
            'font.sans-serif': [self.typography.family, *self.typography.fallbacks, 'DejaVu Sans'],
            'axes.unicode_minus': False,
            'font.size': self.typography.body_size,
            'axes.titlesize': self.typography.header_size,
            'axes.titleweight': self.typography.title_weight,
            'axes.labelsize': self.typography.body_size,
            'xtick.labelsize': self.typography.small_size,
            'ytick.labelsize': self.typography.small_size,
            'legend.fontsize': self.typography.small_size,
            'figure.titlesize': self.typography.title_size,
            'figure.dpi': self.dpi,
            'savefig.dpi': self.dpi,
            'savefig.bbox': 'tight',
            'axes.spines.top': False,
            'axes.spines.right': False,
            'axes.grid': self.show_gridlines,
            'axes.facecolor': 'white',
            'figure.facecolor': 'white',
        }


# Global instance
_chart_style: Optional[ChartStyleConfig] = None


def get_chart_style() -> ChartStyleConfig:
    """Get the global chart style."""
    global _chart_style
    if _chart_style is None:
        _chart_style = ChartStyleConfig()
    return _chart_style


def set_chart_style(style: ChartStyleConfig):
    """Set custom chart style."""
    global _chart_style
    _chart_style = style
