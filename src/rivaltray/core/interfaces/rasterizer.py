"""Vector rasterizer interface"""

from abc import ABC, abstractmethod


class IRasterizer(ABC):
    """Turns SVG source into PNG bytes"""

    name = "rasterizer"

    @abstractmethod
    def rasterize(self, svg_source: bytes, size: int) -> bytes:
        """Render svg_source to a size x size PNG

        Raises:
            CacheError: RENDER_FAILURE when the source is malformed or the
                renderer is unavailable
        """
        pass

    def is_available(self) -> bool:
        return True


__all__ = ["IRasterizer"]
