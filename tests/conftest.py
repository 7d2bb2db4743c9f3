import pytest

from exifstamp.render.typography import FontSet


class FixedWidthFonts(FontSet):
    """Every glyph is half an em wide, whatever fonts are installed."""

    def measure(self, text: str, size: float, bold: bool = False) -> float:
        return len(text) * size * 0.5

    def synthetic_bold(self, size: float) -> bool:
        return False


@pytest.fixture
def fonts() -> FixedWidthFonts:
    return FixedWidthFonts()

