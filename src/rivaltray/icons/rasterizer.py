"""SVG rasterizers

QtSvgRasterizer renders in-process with QSvgRenderer (default).
RsvgConvertRasterizer shells out to rsvg-convert.
"""

import shutil
import subprocess

from loguru import logger
from PySide6.QtCore import QBuffer, QByteArray, QIODevice, Qt
from PySide6.QtGui import QImage, QPainter
from PySide6.QtSvg import QSvgRenderer

from ..core.interfaces.rasterizer import IRasterizer
from ..utils import CacheError, CacheErrorKind

RSVG_TIMEOUT_SECONDS = 5


class QtSvgRasterizer(IRasterizer):
    """Render with QtSvg into an ARGB image and encode as PNG"""

    name = "qtsvg"

    def rasterize(self, svg_source: bytes, size: int) -> bytes:
        renderer = QSvgRenderer(QByteArray(svg_source))
        if not renderer.isValid():
            raise CacheError(CacheErrorKind.RENDER_FAILURE, "QSvgRenderer rejected the icon source")

        image = QImage(size, size, QImage.Format.Format_ARGB32_Premultiplied)
        image.fill(Qt.GlobalColor.transparent)

        painter = QPainter(image)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        renderer.render(painter)
        painter.end()

        data = QByteArray()
        buffer = QBuffer(data)
        buffer.open(QIODevice.OpenModeFlag.WriteOnly)
        ok = image.save(buffer, "PNG")
        buffer.close()

        if not ok or data.isEmpty():
            raise CacheError(CacheErrorKind.RENDER_FAILURE, "PNG encoding failed")

        logger.debug("qtsvg rendered {}x{} icon ({} bytes)", size, size, data.size())
        return bytes(data.data())


class RsvgConvertRasterizer(IRasterizer):
    """Render with the rsvg-convert command line tool"""

    name = "rsvg-convert"

    def __init__(self, executable: str = "rsvg-convert"):
        self._executable = executable

    def is_available(self) -> bool:
        return shutil.which(self._executable) is not None

    def rasterize(self, svg_source: bytes, size: int) -> bytes:
        if not self.is_available():
            raise CacheError(CacheErrorKind.RENDER_FAILURE, f"{self._executable} is not installed")

        try:
            result = subprocess.run(
                [self._executable, "-w", str(size), "-h", str(size), "-f", "png"],
                input=svg_source,
                capture_output=True,
                timeout=RSVG_TIMEOUT_SECONDS,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise CacheError(
                CacheErrorKind.RENDER_FAILURE, f"{self._executable} failed to run", original_exception=e
            ) from e

        if result.returncode != 0 or not result.stdout:
            raise CacheError(
                CacheErrorKind.RENDER_FAILURE,
                f"{self._executable} exited with status {result.returncode}",
                context={"stderr": result.stderr.decode("utf-8", errors="replace").strip()[:200]},
            )

        logger.debug("rsvg-convert rendered {}x{} icon ({} bytes)", size, size, len(result.stdout))
        return result.stdout


def create_rasterizer(name: str) -> IRasterizer:
    """Rasterizer for the icons.renderer setting"""
    if name == RsvgConvertRasterizer.name:
        return RsvgConvertRasterizer()
    return QtSvgRasterizer()
