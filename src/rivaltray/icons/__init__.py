"""Icon pipeline: bucket mapping, vector sources, rasterizers and the on-disk cache"""

from .asset_cache import IconAssetCache, runtime_base_dir
from .bucket_mapper import (
    BUCKET_THRESHOLDS,
    DEFAULT_UNKNOWN_BUCKET,
    bucket_for_percent,
    bucket_from_setting,
    map_status,
)
from .rasterizer import QtSvgRasterizer, RsvgConvertRasterizer, create_rasterizer
from .sources import IconSourceLocator, default_search_paths

__all__ = [
    "IconAssetCache",
    "runtime_base_dir",
    "BUCKET_THRESHOLDS",
    "DEFAULT_UNKNOWN_BUCKET",
    "bucket_for_percent",
    "bucket_from_setting",
    "map_status",
    "QtSvgRasterizer",
    "RsvgConvertRasterizer",
    "create_rasterizer",
    "IconSourceLocator",
    "default_search_paths",
]
