#!/usr/bin/env python3
import sys
from pathlib import Path

from kq.errors import ImageReadError
from kq.image_io import read_kquant_metadata


def print_png_metadata(filepath: Path) -> bool:
    """
    Prints the kquant metadata embedded in a PNG written by kquant.py.
    Returns False if the file could not be read.
    """
    print(f"--- kquant metadata for PNG: {filepath.name} ---")
    try:
        metadata = read_kquant_metadata(filepath)
    except ImageReadError as e:
        print(f"Error: {e}")
        return False

    if metadata:
        for key, value in metadata.items():
            print(f"  {key}: {value}")
    else:
        print("  No kquant-specific metadata found.")
    print("-" * (30 + len(filepath.name)))
    return True


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("Usage: python extract_kquant_meta.py <filename.png> [...]")
        return 1

    exit_code = 0
    for filepath_str in args:
        filepath = Path(filepath_str)
        if filepath.suffix.lower() != ".png":
            print(f"Error: Unsupported file type '{filepath.suffix}' for {filepath}. Only .png files carry metadata.")
            exit_code = 1
            continue
        if not print_png_metadata(filepath):
            exit_code = 1
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
