"""
ASCII Mosaic Result Container

Provides the ASCIIResult dataclass holding the rendered text, the index
matrix and the glyph mosaic, with terminal display, HTML export and file
saving.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from datetime import datetime
import html
import numpy as np
from PIL import Image


@dataclass
class ASCIIResult:
    """
    Container for a render.

    Attributes:
        text: Rendered text, one line per block row, newline-terminated
        index_matrix: Glyph index per block
        mosaic: Pixel buffer after glyph substitution
        metadata: Render parameters
    """
    text: str
    index_matrix: Optional[np.ndarray] = None
    mosaic: Optional[np.ndarray] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def lines(self):
        return self.text.splitlines()

    @property
    def width(self) -> int:
        """Width in characters."""
        lines = self.lines
        return max(len(line) for line in lines) if lines else 0

    @property
    def height(self) -> int:
        """Height in lines."""
        return len(self.lines)

    def display(self, max_width: Optional[int] = None):
        """
        Print the text to the terminal.

        Args:
            max_width: Maximum width to display (truncates if needed)
        """
        if max_width:
            for line in self.lines:
                print(line[:max_width])
        else:
            print(self.text, end='')

    def mosaic_image(self) -> Image.Image:
        """The glyph mosaic as a grayscale PIL Image."""
        if self.mosaic is None:
            raise RuntimeError("Result carries no mosaic pixels.")
        return Image.fromarray(np.ascontiguousarray(self.mosaic))

    def save(self, path: str, format: str = "auto"):
        """
        Save the result to a file.

        Args:
            path: Output file path
            format: "txt", "html", "png" or "auto" (detect from extension)
        """
        if format == "auto":
            lowered = path.lower()
            if lowered.endswith(('.html', '.htm')):
                format = "html"
            elif lowered.endswith(('.png', '.bmp', '.jpg', '.jpeg', '.pgm')):
                format = "png"
            else:
                format = "txt"

        if format == "png":
            self.mosaic_image().save(path)
            return

        content = self.to_html() if format == "html" else self.text
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)

    def to_html(
        self,
        font_family: str = "Menlo, Monaco, 'Courier New', monospace",
        font_size: str = "10px",
        bg_color: str = "#ffffff",
        fg_color: str = "#000000",
        title: str = "ASCII Art",
    ) -> str:
        """
        Convert the text to a styled HTML page.

        Returns:
            Complete HTML document string
        """
        escaped_text = html.escape(self.text)

        meta_html = ""
        if self.metadata:
            meta_items = [
                f"<li><strong>{html.escape(str(key))}:</strong> {html.escape(str(value))}</li>"
                for key, value in self.metadata.items()
            ]
            meta_html = f"""
        <div class="metadata">
            <ul>{''.join(meta_items)}</ul>
        </div>
"""

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{html.escape(title)}</title>
    <style>
        body {{
            background-color: {bg_color};
            color: {fg_color};
            font-family: {font_family};
            font-size: {font_size};
            line-height: 1.0;
            padding: 20px;
            margin: 0;
        }}
        pre {{
            margin: 0;
            white-space: pre;
        }}
        .metadata {{
            margin-top: 20px;
            font-size: 12px;
        }}
        .metadata ul {{
            list-style: none;
            padding: 0;
        }}
    </style>
</head>
<body>
    <pre>{escaped_text}</pre>
{meta_html}
</body>
</html>"""

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the render."""
        glyphs = self.text.replace('\n', '')
        return {
            'width': self.width,
            'height': self.height,
            'total_characters': len(glyphs),
            'unique_characters': len(set(glyphs)),
        }

    def __repr__(self) -> str:
        return f"ASCIIResult(width={self.width}, height={self.height})"

    def __str__(self) -> str:
        return self.text


def create_result(
    text: str,
    index_matrix: Optional[np.ndarray] = None,
    mosaic: Optional[np.ndarray] = None,
    block_size=None,
    **extra_metadata
) -> ASCIIResult:
    """
    Factory function to create an ASCIIResult with standard metadata.

    Args:
        text: Rendered text
        index_matrix: Glyph index per block
        mosaic: Pixel buffer after glyph substitution
        block_size: Model block size (rows, cols)
        **extra_metadata: Additional metadata

    Returns:
        Configured ASCIIResult
    """
    metadata = {
        'generated_at': datetime.now().isoformat(),
    }
    if block_size:
        metadata['block_size'] = f"{block_size[0]}x{block_size[1]}"

    metadata.update(extra_metadata)

    return ASCIIResult(
        text=text,
        index_matrix=index_matrix,
        mosaic=mosaic,
        metadata=metadata,
    )
