"""Color value parsing helpers."""
import re
from typing import Any, Optional, Tuple

_HEX_RE = re.compile(r"^#?([0-9a-f]{3}|[0-9a-f]{6}|[0-9a-f]{8})$")
_RGB_RE = re.compile(r"rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})")

NAMED_COLORS = {
    'white': '#ffffff', 'black': '#000000', 'red': '#ff0000',
    'green': '#008000', 'blue': '#0000ff', 'gray': '#808080',
    'grey': '#808080', 'transparent': None,
}


def normalize_color(value: Any) -> Optional[str]:
    """Parse hex, short hex, rgb()/rgba() or a basic color name to ``#rrggbb``.

    Returns None when the value cannot be read as a color.
    """
    if not isinstance(value, str):
        return None
    color_val = value.strip().lower()
    if not color_val:
        return None

    hex_match = _HEX_RE.match(color_val)
    if hex_match:
        digits = hex_match.group(1)
        if len(digits) == 3:
            digits = ''.join(c * 2 for c in digits)
        return f"#{digits}"

    rgb_match = _RGB_RE.match(color_val)
    if rgb_match:
        r, g, b = (min(int(rgb_match.group(i)), 255) for i in (1, 2, 3))
        return f"#{r:02x}{g:02x}{b:02x}"

    return NAMED_COLORS.get(color_val)


def rgb_to_hex(rgb: Tuple[int, int, int]) -> str:
    return '#{:02x}{:02x}{:02x}'.format(*rgb)
