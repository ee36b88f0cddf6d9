"""
Placeholder artwork drawn with Pillow for passes that ship without an icon.
"""

import io
from typing import Dict, Optional, Tuple

from PIL import Image, ImageDraw

from .assets import SCALES, ImageKind, image_name
from .models import Color

# Icon edge length in points at scale 1
ICON_POINTS = 29
DEFAULT_BACKGROUND = Color(33, 150, 243)


def perceived_luminance(color: Color) -> float:
    return (0.2126 * color.r + 0.7152 * color.g + 0.0722 * color.b) / 255.0


def contrasting(color: Color) -> Tuple[int, int, int]:
    # Bright backgrounds get a black mark, dark ones a white mark
    return (0, 0, 0) if perceived_luminance(color) >= 0.55 else (255, 255, 255)


def placeholder_icon(background: Optional[Color] = None, scale: int = 1) -> bytes:
    """PNG bytes of a solid square icon with a contrasting inset"""
    background = background or DEFAULT_BACKGROUND
    size = ICON_POINTS * scale
    im = Image.new("RGB", (size, size), (background.r, background.g, background.b))
    inset = size // 4
    ImageDraw.Draw(im).rectangle((inset, inset, size - inset - 1, size - inset - 1),
                                 fill=contrasting(background))
    buffer = io.BytesIO()
    im.save(buffer, format="PNG")
    return buffer.getvalue()


def placeholder_icons(background: Optional[Color] = None) -> Dict[str, bytes]:
    """icon.png, icon@2x.png and icon@3x.png"""
    return {image_name(ImageKind.ICON, scale): placeholder_icon(background, scale) for scale in SCALES}
