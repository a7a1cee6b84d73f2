# devaintart_app/services/render.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import io
import re

from PIL import Image, ImageOps

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
OG_SIZE = 1200
OG_BACKGROUND = (24, 24, 27, 255)  # zinc-900

_VIEWBOX_RE = re.compile(r"""viewBox=["'](\d+)\s+(\d+)\s+(\d+)\s+(\d+)["']""")
_SVG_OPEN_RE = re.compile(r"<svg([^>]*)>")
_WIDTH_RE = re.compile(r"""\s*width\s*=\s*["'][^"']*["']""", re.IGNORECASE)
_HEIGHT_RE = re.compile(r"""\s*height\s*=\s*["'][^"']*["']""", re.IGNORECASE)


def svg_dimensions(svg: str) -> tuple[int | None, int | None]:
    """Largura/altura do viewBox (só valores inteiros), ou (None, None)."""
    m = _VIEWBOX_RE.search(svg or "")
    if not m:
        return None, None
    return int(m.group(3)), int(m.group(4))


def inspect_png(data: bytes) -> tuple[int, int]:
    """Valida que `data` é um PNG legível e devolve (largura, altura)."""
    if not data.startswith(PNG_SIGNATURE):
        raise ValueError("Data is not a PNG image.")
    try:
        with Image.open(io.BytesIO(data)) as im:
            im.verify()
        # verify() invalida o objeto; reabre para ler o tamanho
        with Image.open(io.BytesIO(data)) as im:
            if im.format != "PNG":
                raise ValueError("Data is not a PNG image.")
            return im.width, im.height
    except ValueError:
        raise
    except Exception as e:
        raise ValueError(f"PNG could not be decoded: {e}") from e


def normalize_svg_size(svg: str, size: int = OG_SIZE) -> str:
    """Troca width/height do <svg> raiz por size x size, mantendo o viewBox."""
    def _fix(match):
        attrs = _HEIGHT_RE.sub("", _WIDTH_RE.sub("", match.group(1)))
        return f'<svg{attrs} width="{size}" height="{size}">'
    return _SVG_OPEN_RE.sub(_fix, svg, count=1)


def render_svg_png(svg: str, size: int = OG_SIZE, background=OG_BACKGROUND) -> bytes:
    """Rasteriza o SVG num quadrado size x size (fit contain) sobre fundo sólido."""
    import cairosvg  # exige libcairo no sistema

    raw = cairosvg.svg2png(bytestring=normalize_svg_size(svg, size).encode("utf-8"))
    with Image.open(io.BytesIO(raw)) as im:
        art = ImageOps.contain(im.convert("RGBA"), (size, size))
    canvas = Image.new("RGBA", (size, size), background)
    offset = ((size - art.width) // 2, (size - art.height) // 2)
    canvas.alpha_composite(art, dest=offset)
    out = io.BytesIO()
    canvas.convert("RGB").save(out, format="PNG")
    return out.getvalue()
