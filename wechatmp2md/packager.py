"""ZIP packaging of a Markdown file together with its saved images."""

import io
import zipfile

from .formatter import output_filename
from .logger import get_module_logger

logger = get_module_logger("packager")


def build_zip(images: dict[str, bytes], markdown: str, title: str) -> bytes:
    """Archive holding every image plus the Markdown as <title>.md."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for filename, data in images.items():
            archive.writestr(filename, data)
        archive.writestr(output_filename(title, "md"), markdown.encode("utf-8"))
    logger.debug(f"Packed {len(images)} images into archive for {title!r}")
    return buffer.getvalue()
