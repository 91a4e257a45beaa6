"""Single source of truth for the file extensions the CLI accepts without a warning."""

# Matches the upload filter; decoding itself is left to the video backend.
VIDEO_EXTENSIONS = {".mp4", ".webm", ".mov"}

# Raster formats Pillow reads for page images and chroma-key input.
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".gif"}

# Formats that keep an alpha channel (background removal output).
ALPHA_EXTENSIONS = {".png", ".webp"}
