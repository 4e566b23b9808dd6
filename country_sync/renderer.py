import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from PIL import Image, ImageDraw, ImageFont

from country_sync.models import Country

logger = logging.getLogger(__name__)

WIDTH, HEIGHT = 800, 600
TOP_COLOR = (30, 60, 114)
BOTTOM_COLOR = (42, 82, 152)
FONT_CANDIDATES = ("DejaVuSans.ttf", "Arial.ttf", "/System/Library/Fonts/Helvetica.ttc")


def _load_font(size: int):
    for candidate in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    # Fallback to default font
    return ImageFont.load_default()


def _centered(draw: ImageDraw.ImageDraw, y: int, text: str, font, fill) -> None:
    width = draw.textlength(text, font=font)
    draw.text(((WIDTH - width) / 2, y), text, fill=fill, font=font)


def format_gdp(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    return f"${value / 1_000_000:,.2f}M"


class SummaryRenderer:
    """Draws the refresh summary PNG at a fixed, well-known path."""

    def __init__(self, output_path: Union[str, Path], top_n: int = 5):
        self.output_path = Path(output_path)
        self.top_n = top_n

    def exists(self) -> bool:
        return self.output_path.is_file()

    def read_bytes(self) -> bytes:
        return self.output_path.read_bytes()

    def render(
        self,
        total_countries: int,
        top_countries: List[Country],
        last_refreshed_at: Optional[datetime],
    ) -> Path:
        """
        Generate summary image with total countries, top N by GDP, and timestamp.

        The image is written next to the target and moved into place, so a
        reader never gets a partially written file.

        Args:
            total_countries: Total number of countries
            top_countries: Countries ordered by estimated GDP, highest first
            last_refreshed_at: Last refresh timestamp

        Returns:
            Path of the written image
        """
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        img = Image.new("RGB", (WIDTH, HEIGHT), color=TOP_COLOR)
        draw = ImageDraw.Draw(img)

        # Vertical gradient background
        for y in range(HEIGHT):
            ratio = y / HEIGHT
            color = tuple(
                int(top + (bottom - top) * ratio) for top, bottom in zip(TOP_COLOR, BOTTOM_COLOR)
            )
            draw.line([(0, y), (WIDTH, y)], fill=color)

        title_font = _load_font(36)
        header_font = _load_font(24)
        text_font = _load_font(18)
        small_font = _load_font(16)

        _centered(draw, 60, "Country Currency Summary", title_font, "white")
        _centered(draw, 120, f"Total Countries: {total_countries}", header_font, "white")
        _centered(draw, 180, f"Top {self.top_n} Countries by Estimated GDP", header_font, "white")

        y_position = 220
        for i, country in enumerate(top_countries[: self.top_n], 1):
            draw.text((100, y_position), f"{i}. {country.name} - {format_gdp(country.estimated_gdp)}", fill="white", font=text_font)
            y_position += 40

        refreshed = last_refreshed_at.strftime("%Y-%m-%d %H:%M:%S UTC") if last_refreshed_at else "Never"
        _centered(draw, HEIGHT - 30, f"Last Refreshed: {refreshed}", small_font, (204, 204, 204))

        # Unique temp name per render; concurrent refreshes may render at once
        fd, tmp_name = tempfile.mkstemp(
            dir=self.output_path.parent, prefix=self.output_path.name, suffix=".tmp"
        )
        with os.fdopen(fd, "wb") as tmp_file:
            img.save(tmp_file, format="PNG")
        os.replace(tmp_name, self.output_path)

        logger.info(f"Summary image written to {self.output_path}")
        return self.output_path
