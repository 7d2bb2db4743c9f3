STANDARD_EXTENSIONS = {".jpg", ".jpeg", ".png", ".tif", ".tiff", ".webp"}
HEIF_EXTENSIONS = {".heic", ".heif", ".hif"}
RAW_EXTENSIONS = {
    ".arw",
    ".cr2",
    ".cr3",
    ".nef",
    ".raf",
    ".rw2",
    ".orf",
    ".dng",
}
SUPPORTED_EXTENSIONS = STANDARD_EXTENSIONS | HEIF_EXTENSIONS | RAW_EXTENSIONS

# (slot id, side, line, order)
DEFAULT_SLOT_PLACEMENT = (
    ("model", "left", 1, 0),
    ("lens", "left", 1, 1),
    ("focal_length", "right", 1, 0),
    ("f_number", "right", 1, 1),
    ("iso", "right", 1, 2),
    ("exposure_time", "right", 1, 3),
    ("date", "right", 2, 0),
    ("gps", "off", 2, 1),
)

SLOT_LABELS = {
    "model": "Model",
    "lens": "Lens",
    "focal_length": "Focal Length",
    "f_number": "Aperture",
    "iso": "ISO",
    "exposure_time": "Shutter",
    "date": "Date",
    "gps": "Location",
}

# Matched in order against the lower-cased make.
BRAND_TABLE: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("CANON", ("canon",)),
    ("NIKON", ("nikon",)),
    ("FUJIFILM", ("fujifilm", "fuji")),
    ("SONY", ("sony",)),
    ("LEICA", ("leica",)),
    ("HASSELBLAD", ("hasselblad",)),
    ("OLYMPUS", ("olympus", "om digital")),
    ("PANASONIC", ("panasonic", "lumix")),
    ("GOOGLE", ("google", "pixel")),
    ("APPLE", ("apple", "iphone")),
)
DEFAULT_BRAND = "DEFAULT"

LOGO_AUTO = "AUTO"
LOGO_CUSTOM = "CUSTOM"

GPS_PLACEHOLDER_LABEL = "Location Data"
DISPLAY_DATE_FORMAT = "%Y.%m.%d %H:%M"

DEFAULT_JPEG_QUALITY = 95
DEFAULT_RENDER_TIMEOUT_S = 15.0
