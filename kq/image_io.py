import re
from pathlib import Path
from PIL import Image, PngImagePlugin, UnidentifiedImageError
import numpy as np
from typing import Dict, Optional, Tuple, Union

from kq.colors import ColorArrayLike, as_color_array
from kq.errors import ImageDecodeError, ImageReadError, ImageWriteError, InvalidArgumentError

PNG_METADATA_PREFIX = "kquant:"
SOFTWARE_TAG = "kquant (k-color image quantizer)"

PathLike = Union[str, Path]


def _open_error(image_path: Path, error: Exception) -> ImageReadError:
    """Translate an Image.open/load failure into ImageReadError or ImageDecodeError."""
    if isinstance(error, FileNotFoundError):
        return ImageReadError(f"Input file not found at {image_path}")
    if isinstance(error, (PermissionError, IsADirectoryError)):
        return ImageReadError(f"Cannot read {image_path}: {error}")
    if isinstance(error, UnidentifiedImageError):
        return ImageDecodeError(f"Cannot decode {image_path} as an image: {error}")
    # Pillow raises OSError for truncated data as well as for unreadable files
    if image_path.is_file():
        return ImageDecodeError(f"Cannot decode {image_path} as an image: {error}")
    return ImageReadError(f"Cannot read {image_path}: {error}")


def extract_image_data(image_path: PathLike) -> Tuple[int, int, np.ndarray]:
    """
    Read an image and flatten its pixels into a color list.

    Pixels are listed column by column: index x * height + y holds pixel (x, y).
    save_image_data() uses the same mapping.

    Args:
        image_path: Path to any image Pillow can decode. Alpha is discarded.

    Returns:
        Tuple[int, int, np.ndarray]: width, height and the (width*height)x3 uint8 colors.

    Raises:
        ImageReadError: if the file cannot be opened.
        ImageDecodeError: if the file is not a decodable image.
    """
    image_path = Path(image_path)
    try:
        with Image.open(image_path) as image:
            rgb_image = image.convert("RGB")
    except (OSError, SyntaxError) as e:
        raise _open_error(image_path, e) from e

    width, height = rgb_image.size
    # np.array gives (height, width, 3); swap axes so x is the outer index
    pixels = np.array(rgb_image, dtype=np.uint8).reshape((height, width, 3))
    colors = pixels.transpose(1, 0, 2).reshape((-1, 3))
    return width, height, np.ascontiguousarray(colors)


def colors_to_image(width: int, height: int, colors: ColorArrayLike) -> Image.Image:
    """Inverse of the column-major flattening used by extract_image_data()."""
    color_array = as_color_array(colors)
    if width < 0 or height < 0 or len(color_array) != width * height:
        raise InvalidArgumentError(
            f"Expected {width}x{height} = {width * height} colors, got {len(color_array)}."
        )
    pixels = color_array.reshape((width, height, 3)).transpose(1, 0, 2)
    return Image.fromarray(np.ascontiguousarray(pixels), "RGB")


def _metadata_key(key: str) -> str:
    key_clean = re.sub(r'\s+', '_', key)
    key_clean = re.sub(r'[^a-zA-Z0-9_.-]', '', key_clean)
    if not re.match(r'^[a-zA-Z_]', key_clean):
        key_clean = "kquant_" + key_clean
    # tEXt keywords are limited to 79 bytes including the prefix
    return key_clean[:70]


def build_png_info(
    command_line_invocation: Optional[str] = None,
    additional_metadata: Optional[Dict[str, str]] = None,
) -> PngImagePlugin.PngInfo:
    png_info = PngImagePlugin.PngInfo()
    if command_line_invocation:
        png_info.add_text(f"{PNG_METADATA_PREFIX}command_line", command_line_invocation)
    png_info.add_text("Software", SOFTWARE_TAG)
    for key, value in (additional_metadata or {}).items():
        png_info.add_text(f"{PNG_METADATA_PREFIX}{_metadata_key(key)}", str(value))
    return png_info


def save_image_data(
    width: int,
    height: int,
    colors: ColorArrayLike,
    output_path: PathLike,
    command_line_invocation: Optional[str] = None,
    additional_metadata: Optional[Dict[str, str]] = None,
) -> Path:
    """
    Write a color list back out as an image.

    The file format follows the suffix of output_path. PNG files also get the
    command line and additional_metadata embedded as tEXt chunks.

    Raises:
        InvalidArgumentError: if len(colors) != width * height.
        ImageWriteError: if the file cannot be written.
    """
    output_path = Path(output_path)
    image = colors_to_image(width, height, colors)

    save_kwargs = {}
    if output_path.suffix.lower() == ".png":
        save_kwargs["pnginfo"] = build_png_info(command_line_invocation, additional_metadata)

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        image.save(output_path, **save_kwargs)
    except (OSError, ValueError) as e:
        # ValueError: Pillow could not map the suffix to a format
        raise ImageWriteError(f"Error saving image to {output_path.resolve()}: {e}") from e
    return output_path


def read_kquant_metadata(image_path: PathLike) -> Dict[str, str]:
    """Return the kquant tEXt entries of a PNG with the key prefix removed."""
    image_path = Path(image_path)
    try:
        with Image.open(image_path) as image:
            info = dict(image.info)
    except (OSError, SyntaxError) as e:
        raise _open_error(image_path, e) from e

    return {
        key[len(PNG_METADATA_PREFIX):]: value
        for key, value in info.items()
        if isinstance(key, str) and key.startswith(PNG_METADATA_PREFIX)
    }
