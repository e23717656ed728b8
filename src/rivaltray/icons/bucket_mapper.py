"""Battery bucket mapping

Pure function from a DeviceStatus to the IconKey that represents it.
"""

from ..core.models import Bucket, DeviceStatus, IconKey, ThemeStyle

# Lower bound (inclusive) of each discharge bucket, highest first
BUCKET_THRESHOLDS = (
    (91, Bucket.FULL),
    (61, Bucket.HIGH),
    (31, Bucket.MEDIUM),
    (11, Bucket.LOW),
    (0, Bucket.CRITICAL),
)

DEFAULT_UNKNOWN_BUCKET = Bucket.MEDIUM


def bucket_for_percent(percent: int) -> Bucket:
    for lower, bucket in BUCKET_THRESHOLDS:
        if percent >= lower:
            return bucket
    return Bucket.CRITICAL


def map_status(
    status: DeviceStatus,
    style: ThemeStyle,
    accent: str = "",
    unknown_bucket: Bucket = DEFAULT_UNKNOWN_BUCKET,
) -> IconKey:
    """Map a sample to its icon key

    Args:
        status: the battery sample
        style: process-wide icon style
        accent: foreground colour, only meaningful for ThemeStyle.CUSTOM
        unknown_bucket: bucket for a connected device with no percentage
    """
    if not status.connected:
        bucket = Bucket.DISCONNECTED
    elif status.charging:
        bucket = Bucket.CHARGING
    elif status.battery_percent is None:
        bucket = unknown_bucket
    else:
        bucket = bucket_for_percent(status.battery_percent)

    return IconKey(
        bucket=bucket,
        variant=style,
        accent=accent.lower() if style == ThemeStyle.CUSTOM else "",
    )


def bucket_from_setting(value: str, default: Bucket = DEFAULT_UNKNOWN_BUCKET) -> Bucket:
    """Parse icons.unknown_bucket; charging is never a valid fallback"""
    try:
        bucket = Bucket(str(value).lower())
    except ValueError:
        return default
    return default if bucket == Bucket.CHARGING else bucket
