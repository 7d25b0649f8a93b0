from types import SimpleNamespace

theme = SimpleNamespace(
    UP='#008000',
    DOWN='#FF0000',
    VOLUME=(70, 130, 180, 204),
    BG_TOP='#141A26',
    BG_BOTTOM='#101520',
    GRID='#2A2E39',
    TEXT='#FFFFFF',
    MUTED='#6B7280',
    CROSSHAIR='#FFFFFF',
    TOOLTIP_BG='rgba(0, 0, 0, 0.7)',
)
