class KQuantError(Exception):
    """Base class for every error raised by the kq package."""


class InvalidArgumentError(KQuantError, ValueError):
    """Raised when k, the pixel data, or an engine option is out of range."""


class ImageReadError(KQuantError, OSError):
    """Raised when an input image cannot be opened."""


class ImageDecodeError(ImageReadError):
    """Raised when an input file is readable but is not a decodable image."""


class ImageWriteError(KQuantError, OSError):
    """Raised when the quantized image cannot be written."""
