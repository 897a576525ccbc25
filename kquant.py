import typer
from kq import image_io, quantize
from kq.errors import InvalidArgumentError, KQuantError
from pathlib import Path
from typing import Optional
import sys

import rich.traceback

from enum import Enum


class QuantizeMethod(str, Enum):
    RANDOM = "random"
    KMEANS = "kmeans"


DEFAULT_K = 24
DEFAULT_OUTPUT = "convert.jpg"


def print_usage(ctx: typer.Context) -> None:
    typer.echo("Specify the path to an image as the only argument, e.g. 'python kquant.py photo.jpg -k 16'.\n")
    typer.echo(ctx.get_help())


def kquant_cli(
    ctx: typer.Context,
    image_path: Optional[Path] = typer.Argument(
        None,
        help="Input image file (e.g., image.jpg). Without it, usage is printed.",
        metavar="IMAGE_PATH",
    ),
    k: int = typer.Option(
        DEFAULT_K, "-k", "--k", min=1, help=f"Number of colors to reduce the image to. Default: {DEFAULT_K}."
    ),
    output_path: Path = typer.Option(
        Path(DEFAULT_OUTPUT), "--output", "-o",
        help=f"Where to write the quantized image; format follows the suffix. Default: {DEFAULT_OUTPUT}.",
        dir_okay=False,
    ),
    method: QuantizeMethod = typer.Option(
        QuantizeMethod.RANDOM, "--method",
        help="random: single nearest-center pass over k sampled pixels. kmeans: scikit-learn KMeans. Default: random.",
    ),
    seed: Optional[int] = typer.Option(
        None, "--seed", help="Seed for center selection, for reproducible output. Default: unseeded."
    ),
    workers: int = typer.Option(
        1, "--workers", min=1, help="Threads used for the nearest-center assignment. Default: 1."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Overwrite the output file if it exists."),
):
    """
    Reduces an image to K colors by nearest-center color quantization.
    """
    if image_path is None:
        print_usage(ctx)
        raise typer.Exit(code=0)

    command_line_str = " ".join(sys.argv)

    if output_path.exists() and not yes:
        typer.secho(f"Error: File already exists: {output_path}", fg=typer.colors.RED)
        typer.secho("Use --yes (-y) to overwrite.", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)

    typer.echo("Starting image quantization.")

    typer.echo(f"Extracting image data from {image_path}")
    try:
        width, height, colors = image_io.extract_image_data(image_path)
    except KQuantError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Done extracting image data: {width}x{height} ({len(colors)} pixels).")

    typer.echo(f"Performing K-means clustering (k={k}, method={method.value}).")
    try:
        quantized_colors = quantize.quantize(k, colors, seed=seed, method=method.value, workers=workers)
    except InvalidArgumentError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    palette = quantize.palette_of(quantized_colors)
    typer.echo(f"Done performing K-means clustering ({len(palette)} distinct colors).")

    typer.echo(f"Saving clustered image data to {output_path}")
    try:
        image_io.save_image_data(
            width,
            height,
            quantized_colors,
            output_path,
            command_line_invocation=command_line_str,
            additional_metadata={
                "SourceImage": str(image_path),
                "K": str(k),
                "Method": method.value,
                "Seed": "unseeded" if seed is None else str(seed),
                "PaletteColors": str(len(palette)),
            },
        )
    except KQuantError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.secho("Image quantization done.", fg=typer.colors.GREEN)


def main():
    rich.traceback.install(show_locals=False, suppress=[typer])
    typer.run(kquant_cli)


if __name__ == "__main__":
    main()
