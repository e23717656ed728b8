"""Vector icon sources

Locates the SVG for each bucket, overlays the charging glyph and
recolours the template foreground to the active theme style.
"""

import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..core.models import Bucket, IconKey, ThemeStyle
from ..utils import CacheError, CacheErrorKind, LogCategory, app_logger

PACKAGE_ICON_DIR = Path(__file__).resolve().parent.parent / "resources" / "icons"

# Foreground colour of each built-in style (light icons suit dark panels)
STYLE_COLORS: Dict[ThemeStyle, str] = {
    ThemeStyle.LIGHT: "#eeeeee",
    ThemeStyle.DARK: "#232629",
}

# Template foreground in the shipped SVGs
TEMPLATE_COLOR_RE = re.compile(r"#000000\b|#000(?![0-9a-fA-F])")

BUCKET_SOURCES: Dict[Bucket, str] = {
    Bucket.DISCONNECTED: "battery-disconnected.svg",
    Bucket.CRITICAL: "battery-0.svg",
    Bucket.LOW: "battery-25.svg",
    Bucket.MEDIUM: "battery-50.svg",
    Bucket.HIGH: "battery-75.svg",
    Bucket.FULL: "battery-100.svg",
    Bucket.CHARGING: "battery-50.svg",
}
CHARGING_OVERLAY = "charging.svg"

_HICOLOR_SUBDIRS = (
    "scalable/apps",
    "symbolic/apps",
    "64x64/apps",
    "48x48/apps",
    "32x32/apps",
)


def default_search_paths() -> List[Path]:
    """Icon directories in lookup order"""
    paths = [PACKAGE_ICON_DIR]

    data_dirs = [os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")]
    data_dirs += (os.getenv("XDG_DATA_DIRS") or "/usr/local/share:/usr/share").split(":")
    for data_dir in data_dirs:
        if not data_dir:
            continue
        paths.append(Path(data_dir) / "rivaltray" / "icons")
        for sub in _HICOLOR_SUBDIRS:
            paths.append(Path(data_dir) / "icons" / "hicolor" / sub)

    paths.append(Path.cwd() / "icons")
    return paths


def style_color(style: ThemeStyle, accent: str = "") -> str:
    if style == ThemeStyle.CUSTOM:
        return accent or STYLE_COLORS[ThemeStyle.LIGHT]
    return STYLE_COLORS[style]


def recolor_svg(svg_text: str, color: str) -> str:
    """Replace the template foreground (#000000 / #000) with color"""
    return TEMPLATE_COLOR_RE.sub(color, svg_text)


def overlay_svg(base_svg: str, overlay_svg_text: str) -> str:
    """Insert the drawing elements of overlay into base, on top

    Everything before the overlay's first <path and after its closing
    </svg> is dropped; the remainder goes just before base's </svg>.
    """
    body = overlay_svg_text
    start = body.find("<path")
    if start != -1:
        body = body[start:]
    end = body.rfind("</svg>")
    if end != -1:
        body = body[:end]

    insert_at = base_svg.rfind("</svg>")
    if insert_at == -1:
        raise CacheError(CacheErrorKind.RENDER_FAILURE, "Base icon is not an SVG document")
    return f"{base_svg[:insert_at]}{body.rstrip()}\n{base_svg[insert_at:]}"


class IconSourceLocator:
    """Finds and prepares the vector source for an IconKey"""

    def __init__(self, search_paths: Optional[Sequence[Path]] = None):
        self._search_paths = list(search_paths) if search_paths is not None else default_search_paths()
        self._found: Dict[str, Path] = {}

    def find_icon(self, name: str) -> Optional[Path]:
        if name in self._found:
            return self._found[name]

        for directory in self._search_paths:
            candidate = directory / name
            if candidate.is_file():
                self._found[name] = candidate
                app_logger.log_icon_event("Found icon source", {"name": name, "path": str(candidate)})
                return candidate

        app_logger.warning(
            f"Icon source '{name}' not found",
            LogCategory.ICON,
            context={"searched": [str(p) for p in self._search_paths]},
            component="icon_sources",
        )
        return None

    def _read(self, name: str) -> str:
        path = self.find_icon(name)
        if path is None:
            raise CacheError(CacheErrorKind.SOURCE_MISSING, f"Icon source '{name}' not found")
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise CacheError(
                CacheErrorKind.SOURCE_MISSING,
                f"Cannot read icon source {path}",
                original_exception=e,
            ) from e

    def load(self, key: IconKey) -> bytes:
        """SVG bytes ready for rasterization

        Raises:
            CacheError: SOURCE_MISSING if a source file cannot be found or read
        """
        svg = self._read(BUCKET_SOURCES[key.bucket])
        if key.bucket == Bucket.CHARGING:
            svg = overlay_svg(svg, self._read(CHARGING_OVERLAY))

        return recolor_svg(svg, style_color(key.variant, key.accent)).encode("utf-8")
