"""
Application default settings and constants
"""

# =============================================================================
# Application Information
# =============================================================================
APP_NAME = "Slide Deck PDF Converter"
APP_VERSION = "1.0.0"

# =============================================================================
# Geometry
# =============================================================================
EMU_PER_INCH = 914400      # 1 inch = 914400 EMU
RENDER_DPI = 96            # Pixels per inch of the rendered canvas
MM_PER_INCH = 25.4
POINTS_PER_INCH = 72

# Standard 16:9 slide, used when presentation.xml declares no size
DEFAULT_SLIDE_WIDTH_EMU = 9144000   # 10 inches
DEFAULT_SLIDE_HEIGHT_EMU = 5143500  # 5.625 inches

# =============================================================================
# Package Settings
# =============================================================================
SUPPORTED_EXTENSIONS = (".pptx", ".ppt")

# =============================================================================
# Rendering Settings
# =============================================================================
CANVAS_BACKGROUND = (255, 255, 255, 255)      # Opaque white
DEFAULT_FONT_SIZE = 24.0                      # Points, text styling is not extracted
DEFAULT_TEXT_COLOR = (0, 0, 0, 255)           # Black
TEXT_PLACEHOLDER_COLOR = (200, 200, 200, 255)  # Light grey outline
DEFAULT_SHAPE_FILL = (128, 128, 128, 255)     # Unparsable solid fill colour

# =============================================================================
# Pipeline Settings
# =============================================================================
DEFAULT_MAX_RETRIES = 2
RETRY_DELAY_SECONDS = 0.5
DEFAULT_RENDER_WORKERS = 1
DEFAULT_DOCUMENT_TITLE = "Presentation"
ASSEMBLY_PERCENTAGE = 95.0

# =============================================================================
# Settings File
# =============================================================================
SETTINGS_FILENAME = "settings.json"
