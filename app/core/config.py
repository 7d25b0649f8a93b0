from datetime import datetime, timezone

BAR_COUNT = 200
BASE_PRICE = 200.0
# Reference instant of the first bar: 2024-10-12 00:00 UTC.
BASE_TS_MS = int(datetime(2024, 10, 12, tzinfo=timezone.utc).timestamp() * 1000)

CLOSE_STEP = 5.0
WICK_MAX = 5.0
VOLUME_MIN = 500.0
VOLUME_SPAN = 1000.0

DEFAULT_GRANULARITY = 'day'
DEFAULT_ZOOM = 1.0
ZOOM_STEP = 0.5
ZOOM_FLOOR = 0.1
# Number of index positions visible at zoom level 1.0.
WINDOW_SPAN = 80.0
