"""Compositor — rasterize a timeline scene into an RGB frame.

Walks the layers produced by timeline.build_scene() bottom to top and
alpha-blends each onto a float canvas with Pillow and numpy. Layer
drawing is deterministic: the only "noise" (film grain) is seeded from
the layer's frame seed.

All pixel constants are defined at a reference frame width of 1080px
and scaled linearly with the output width.
"""

from functools import lru_cache

import numpy as np
from PIL import Image, ImageDraw, ImageFilter

from .common import load_font, mix_colors, parse_hex_color, random_from_seed, BOLD_WEIGHT
from .media import MediaLoader
from .text_styles import CURSOR_GLYPH
from .timeline import SCANLINE_SPACING


# ── Layout constants (at REF_W) ──────────────────────────────────

REF_W = 1080

CAPTION_MAX_WIDTH_FRAC = 0.9
CAPTION_TOP_FRAC = 0.12
CAPTION_BOTTOM_FRAC = 0.80
CAPTION_LINE_SPACING = 1.2

_REF_CARD_PADDING = 48
_REF_CARD_IMAGE = 240
_REF_CARD_GAP = 28
_REF_CARD_RADIUS = 48
_REF_CARD_BOTTOM_MARGIN = 160
_REF_TITLE_FONT = 48
_REF_PRICE_FONT = 72
_REF_CTA_FONT = 32
_REF_CTA_PAD_X = 56
_REF_CTA_PAD_Y = 22

CARD_WIDTH_FRAC = 0.8
CARD_BG_ALPHA = 0.7
SCANLINE_ALPHA = 0.06


def _px(ref: float, width: int) -> int:
    return max(1, round(ref * width / REF_W))


# ── Blending helpers ─────────────────────────────────────────────


def _blend(canvas: np.ndarray, rgb, alpha: np.ndarray) -> None:
    """Blend a solid color onto canvas in place using a (h, w) alpha map."""
    a = alpha[:, :, None]
    canvas *= 1 - a
    canvas += np.asarray(rgb, dtype=np.float32) * a


def _blend_rgba(canvas: np.ndarray, layer: Image.Image, opacity: float = 1.0) -> None:
    """Alpha-composite a full-frame RGBA Pillow image onto canvas in place."""
    arr = np.asarray(layer, dtype=np.float32)
    a = arr[:, :, 3:4] / 255.0 * opacity
    canvas *= 1 - a
    canvas += arr[:, :, :3] * a


def _mask_array(mask: Image.Image) -> np.ndarray:
    return np.asarray(mask, dtype=np.float32) / 255.0


# ── Background ───────────────────────────────────────────────────


def _draw_background(layer: dict, w: int, h: int) -> np.ndarray:
    """Vertical gradient from the theme background toward its tint."""
    base = np.asarray(layer["color"], dtype=np.float32)
    end = np.asarray(mix_colors(layer["color"], layer["tint"], 0.25), dtype=np.float32)
    ramp = np.linspace(0.0, 1.0, h, dtype=np.float32)[:, None, None]
    canvas = np.broadcast_to(base + (end - base) * ramp, (h, w, 3)).copy()

    if layer["pattern"] == "scanlines":
        rows = np.arange(layer["scanline_offset"], h, SCANLINE_SPACING)
        line = np.asarray(layer["line_color"], dtype=np.float32)
        canvas[rows] = canvas[rows] * (1 - SCANLINE_ALPHA) + line * SCANLINE_ALPHA
    return canvas


# ── Clips ────────────────────────────────────────────────────────


def _cover_fit(img: Image.Image, w: int, h: int, scale: float) -> Image.Image:
    """Scale img to cover (w*scale, h*scale) and center-crop to (w, h)."""
    src_w, src_h = img.size
    factor = max(w / src_w, h / src_h) * max(scale, 1e-3)
    new_w = max(w, round(src_w * factor))
    new_h = max(h, round(src_h * factor))
    resized = img.resize((new_w, new_h), Image.BILINEAR)
    left = (new_w - w) // 2
    top = (new_h - h) // 2
    return resized.crop((left, top, left + w, top + h))


def _shift(arr: np.ndarray, dx: int, dy: int, fill: np.ndarray) -> np.ndarray:
    """Translate an (h, w, 3) array, filling exposed pixels from fill."""
    if dx == 0 and dy == 0:
        return arr
    h, w = arr.shape[:2]
    out = fill.copy()
    xs, xd = (0, dx) if dx >= 0 else (-dx, 0)
    ys, yd = (0, dy) if dy >= 0 else (-dy, 0)
    cw, ch = w - abs(dx), h - abs(dy)
    if cw > 0 and ch > 0:
        out[yd:yd + ch, xd:xd + cw] = arr[ys:ys + ch, xs:xs + cw]
    return out


def _clip_source(layer: dict, loader: MediaLoader) -> Image.Image | None:
    if layer["url"] is None:
        return None
    if layer["clip_type"] == "video":
        frame = loader.video_frame(layer["url"], layer["source_time"])
        return Image.fromarray(frame) if frame is not None else None
    return loader.load_image(layer["url"])


def _draw_clip(
    canvas: np.ndarray, layer: dict, loader: MediaLoader, background: np.ndarray,
) -> None:
    h, w = canvas.shape[:2]
    source = _clip_source(layer, loader)
    if source is None:
        # Missing media: the clip window shows the theme background.
        pixels = background
    else:
        pixels = np.asarray(_cover_fit(source, w, h, layer["scale"]), dtype=np.float32)

    pixels = _shift(pixels, round(layer["offset_x"]), round(layer["offset_y"]), background)

    split = round(layer["rgb_split"])
    if split:
        pixels = pixels.copy()
        pixels[:, :, 0] = np.roll(pixels[:, :, 0], split, axis=1)
        pixels[:, :, 2] = np.roll(pixels[:, :, 2], -split, axis=1)

    opacity = float(layer["opacity"])
    canvas *= 1 - opacity
    canvas += pixels * opacity


# ── Scrim, vignette, grain ───────────────────────────────────────


def _draw_scrim(canvas: np.ndarray, layer: dict) -> None:
    h, w = canvas.shape[:2]
    rows = np.linspace(0.0, 1.0, h, dtype=np.float32)
    alpha_rows = np.interp(
        rows,
        [0.0, 0.3, 0.7, 1.0],
        [layer["top_alpha"], 0.0, 0.0, layer["bottom_alpha"]],
    ).astype(np.float32)
    _blend(canvas, layer["color"], np.broadcast_to(alpha_rows[:, None], (h, w)))


@lru_cache(maxsize=8)
def _vignette_mask(w: int, h: int) -> np.ndarray:
    ys = np.linspace(-1.0, 1.0, h, dtype=np.float32)[:, None]
    xs = np.linspace(-1.0, 1.0, w, dtype=np.float32)[None, :]
    r = np.sqrt(xs * xs + ys * ys) / np.sqrt(2.0)
    return np.clip((r - 0.4) / 0.6, 0.0, 1.0)


def _draw_vignette(canvas: np.ndarray, layer: dict) -> None:
    h, w = canvas.shape[:2]
    _blend(canvas, (0, 0, 0), _vignette_mask(w, h) * layer["strength"])


def _draw_grain(canvas: np.ndarray, layer: dict) -> None:
    h, w = canvas.shape[:2]
    seed = int(random_from_seed(layer["seed"]) * 2**32)
    rng = np.random.default_rng(seed)
    noise = rng.normal(0.0, layer["strength"] * 255.0, (h, w, 1)).astype(np.float32)
    canvas += noise


# ── Text ─────────────────────────────────────────────────────────


def _line_width(draw: ImageDraw.ImageDraw, text: str, font, spacing_px: float) -> float:
    if not text:
        return 0.0
    if spacing_px == 0:
        return draw.textlength(text, font=font)
    return sum(draw.textlength(ch, font=font) for ch in text) + spacing_px * (len(text) - 1)


def _wrap_words(draw, text: str, font, spacing_px: float, max_width: float) -> list[str]:
    """Greedy word wrap; a single over-long word gets its own line."""
    lines = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and _line_width(draw, candidate, font, spacing_px) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    lines.append(current)
    return lines


def _draw_line(draw, xy, text: str, font, spacing_px: float, fill, stroke_width=0) -> float:
    """Draw one line with letter spacing; returns the x after the last glyph."""
    x, y = xy
    if spacing_px == 0:
        draw.text((x, y), text, font=font, fill=fill, stroke_width=stroke_width, stroke_fill=fill)
        return x + draw.textlength(text, font=font)
    for ch in text:
        draw.text((x, y), ch, font=font, fill=fill, stroke_width=stroke_width, stroke_fill=fill)
        x += draw.textlength(ch, font=font) + spacing_px
    return x - spacing_px


def _caption_layout(style, w: int, h: int, position: str):
    """Font, line placements and cursor anchor for a caption style."""
    size = max(1, round(style.font_size * style.scale))
    font = load_font(size, style.font_family, bold=style.font_weight >= BOLD_WEIGHT)
    spacing_px = style.letter_spacing * size
    measure = ImageDraw.Draw(Image.new("L", (1, 1)))

    # Typewriter captions reserve room for the cursor so text doesn't jump.
    text = style.display_text
    if style.reveal is not None:
        text = text + CURSOR_GLYPH
    lines = _wrap_words(measure, text, font, spacing_px, w * CAPTION_MAX_WIDTH_FRAC) if text else [""]
    line_h = round(size * CAPTION_LINE_SPACING)
    block_h = line_h * len(lines)

    if position == "top":
        top = round(h * CAPTION_TOP_FRAC)
    elif position == "bottom":
        top = round(h * CAPTION_BOTTOM_FRAC) - block_h
    else:
        top = (h - block_h) // 2
    top += round(style.translate_y)

    placed = []
    for i, line in enumerate(lines):
        line_w = _line_width(measure, line, font, spacing_px)
        x = (w - line_w) / 2 + style.translate_x
        placed.append((x, top + i * line_h, line))
    return font, spacing_px, placed


def _text_mask(w, h, placed, font, spacing_px, dx=0.0, dy=0.0, stroke=0, cursor=True):
    mask = Image.new("L", (w, h), 0)
    draw = ImageDraw.Draw(mask)
    for i, (x, y, line) in enumerate(placed):
        if not cursor and i == len(placed) - 1 and line.endswith(CURSOR_GLYPH):
            line = line[: -len(CURSOR_GLYPH)]
        _draw_line(draw, (x + dx, y + dy), line, font, spacing_px, 255, stroke_width=stroke)
    return mask


def _draw_caption(canvas: np.ndarray, layer: dict) -> None:
    style = layer["style"]
    if style.opacity <= 0:
        return
    h, w = canvas.shape[:2]
    font, spacing_px, placed = _caption_layout(style, w, h, layer["position"])
    cursor = style.reveal is None or style.reveal.cursor_visible
    opacity = style.opacity
    unit = w / REF_W

    for shadow in style.shadows:
        mask = _text_mask(
            w, h, placed, font, spacing_px,
            dx=shadow.offset_x * unit, dy=shadow.offset_y * unit, cursor=cursor,
        )
        if shadow.blur > 0:
            mask = mask.filter(ImageFilter.GaussianBlur(shadow.blur * unit / 2))
        _blend(canvas, parse_hex_color(shadow.color), _mask_array(mask) * shadow.alpha * opacity)

    if style.outline_color and style.outline_width:
        stroke = max(1, round(style.outline_width * unit))
        mask = _text_mask(w, h, placed, font, spacing_px, stroke=stroke, cursor=cursor)
        _blend(canvas, parse_hex_color(style.outline_color), _mask_array(mask) * opacity)

    mask = _text_mask(w, h, placed, font, spacing_px, cursor=cursor)
    _blend(canvas, parse_hex_color(style.color), _mask_array(mask) * opacity)


# ── End card ─────────────────────────────────────────────────────


def _draw_end_card(canvas: np.ndarray, layer: dict, loader: MediaLoader) -> None:
    if layer["opacity"] <= 0:
        return
    h, w = canvas.shape[:2]
    pad = _px(_REF_CARD_PADDING, w)
    gap = _px(_REF_CARD_GAP, w)
    img_size = _px(_REF_CARD_IMAGE, w)
    title_font = load_font(_px(_REF_TITLE_FONT, w), "Inter", bold=True)
    price_font = load_font(_px(_REF_PRICE_FONT, w), layer["font_family"], bold=True)
    cta_font = load_font(_px(_REF_CTA_FONT, w), "Inter", bold=True)
    cta_pad_x, cta_pad_y = _px(_REF_CTA_PAD_X, w), _px(_REF_CTA_PAD_Y, w)

    card = Image.new("RGBA", (w, h), (0, 0, 0, 0))
    draw = ImageDraw.Draw(card)

    title_box = draw.textbbox((0, 0), layer["title"], font=title_font)
    price_box = draw.textbbox((0, 0), layer["price"], font=price_font)
    cta_box = draw.textbbox((0, 0), layer["cta"].upper(), font=cta_font)
    title_h = title_box[3] - title_box[1]
    price_h = price_box[3] - price_box[1]
    cta_h = cta_box[3] - cta_box[1] + 2 * cta_pad_y

    card_w = round(w * CARD_WIDTH_FRAC)
    card_h = pad + img_size + gap + title_h + gap + price_h + gap + cta_h + pad
    card_x = (w - card_w) // 2
    card_y = h - card_h - _px(_REF_CARD_BOTTOM_MARGIN, w) + round(layer["offset_y"])
    cx = w // 2

    draw.rounded_rectangle(
        [(card_x, card_y), (card_x + card_w, card_y + card_h)],
        radius=_px(_REF_CARD_RADIUS, w),
        fill=(0, 0, 0, round(255 * CARD_BG_ALPHA)),
        outline=(255, 255, 255, 26),
    )

    # Product image, or a tinted placeholder tile.
    y = card_y + pad
    image = loader.load_image(layer["image"]) if layer["image"] else None
    if image is not None:
        card.paste(_cover_fit(image, img_size, img_size, 1.0), (cx - img_size // 2, y))
    else:
        draw.rounded_rectangle(
            [(cx - img_size // 2, y), (cx + img_size // 2, y + img_size)],
            radius=_px(32, w),
            fill=(*layer["price_color"], 77),
        )
    y += img_size + gap

    title_w = title_box[2] - title_box[0]
    draw.text((cx - title_w / 2, y - title_box[1]), layer["title"], font=title_font, fill=(255, 255, 255, 255))
    y += title_h + gap

    price_w = price_box[2] - price_box[0]
    price_xy = (cx - price_w / 2 + layer["price_offset_x"] * w / REF_W, y - price_box[1])
    if layer["price_glow"] > 0:
        glow = Image.new("L", (w, h), 0)
        ImageDraw.Draw(glow).text(price_xy, layer["price"], font=price_font, fill=255)
        glow = glow.filter(ImageFilter.GaussianBlur(_px(20, w) * layer["price_glow"]))
        alpha = np.asarray(glow, dtype=np.float32) * layer["price_glow"]
        glow_layer = np.zeros((h, w, 4), dtype=np.uint8)
        glow_layer[:, :, :3] = layer["price_color"]
        glow_layer[:, :, 3] = np.clip(alpha, 0, 255).astype(np.uint8)
        card = Image.alpha_composite(card, Image.fromarray(glow_layer, "RGBA"))
        draw = ImageDraw.Draw(card)
    draw.text(price_xy, layer["price"], font=price_font, fill=(*layer["price_color"], 255))
    y += price_h + gap

    cta_text = layer["cta"].upper()
    cta_w = cta_box[2] - cta_box[0] + 2 * cta_pad_x
    pill_fill = (*layer["price_color"], 255)
    text_fill = (0, 0, 0, 255) if sum(layer["price_color"]) > 382 else (255, 255, 255, 255)
    draw.rounded_rectangle(
        [(cx - cta_w // 2, y), (cx + cta_w // 2, y + cta_h)],
        radius=cta_h // 2,
        fill=pill_fill,
    )
    draw.text(
        (cx - (cta_box[2] - cta_box[0]) / 2, y + cta_pad_y - cta_box[1]),
        cta_text, font=cta_font, fill=text_fill,
    )

    _blend_rgba(canvas, card, opacity=layer["opacity"])


# ── Scene ────────────────────────────────────────────────────────


def rasterize_scene(scene: dict, loader: MediaLoader | None = None) -> np.ndarray:
    """Draw a scene's layers bottom to top.

    Returns:
        numpy array of shape (height, width, 3), dtype uint8.
    """
    owned = loader is None
    loader = loader or MediaLoader()
    try:
        return _rasterize_layers(scene, loader)
    finally:
        if owned:
            loader.close()


def _rasterize_layers(scene: dict, loader: MediaLoader) -> np.ndarray:
    w, h = scene["width"], scene["height"]
    canvas = None
    background = None

    for layer in scene["layers"]:
        kind = layer["kind"]
        if kind == "background":
            background = _draw_background(layer, w, h)
            canvas = background.copy()
        elif kind == "clip":
            _draw_clip(canvas, layer, loader, background)
        elif kind == "scrim":
            _draw_scrim(canvas, layer)
        elif kind == "caption":
            _draw_caption(canvas, layer)
        elif kind == "end_card":
            _draw_end_card(canvas, layer, loader)
        elif kind == "grain":
            _draw_grain(canvas, layer)
        elif kind == "vignette":
            _draw_vignette(canvas, layer)
        else:
            raise ValueError(f"Unknown layer kind: '{kind}'")

    return np.clip(canvas, 0, 255).astype(np.uint8)
