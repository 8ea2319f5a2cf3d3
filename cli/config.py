from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_CHART_WIDTH = 72
DEFAULT_CHART_HEIGHT = 16
DEFAULT_CHART_COLOR = "cyan"

_WIDTH_ENV = "CHART_WIDTH"
_HEIGHT_ENV = "CHART_HEIGHT"
_COLOR_ENV = "CHART_COLOR"


@dataclass(frozen=True)
class CLIConfig:
    chart_width: int = DEFAULT_CHART_WIDTH
    chart_height: int = DEFAULT_CHART_HEIGHT
    chart_color: str = DEFAULT_CHART_COLOR


def _read_int(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def load_config(
    chart_width: Optional[int] = None,
    chart_height: Optional[int] = None,
    chart_color: Optional[str] = None,
) -> CLIConfig:
    if chart_width is None:
        chart_width = _read_int(os.getenv(_WIDTH_ENV), DEFAULT_CHART_WIDTH)
    if chart_height is None:
        chart_height = _read_int(os.getenv(_HEIGHT_ENV), DEFAULT_CHART_HEIGHT)
    color = chart_color or os.getenv(_COLOR_ENV) or DEFAULT_CHART_COLOR
    return CLIConfig(
        chart_width=chart_width,
        chart_height=chart_height,
        chart_color=color.strip().lower(),
    )
