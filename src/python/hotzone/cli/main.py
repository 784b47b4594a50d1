"""Hotzone level tools command-line interface.

This module provides CLI commands for decoding Hotzone level files.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import numpy as np

from hotzone.level import LevelLoader, LevelLoadError, LocalFileAccess
from hotzone.parser import (
    decode_composite,
    decode_config,
    decode_fixed_heightmap,
    decode_narrative,
)
from hotzone.parser.slk import GRID_SIZE

# Exit codes
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1
EXIT_SYSTEM_ERROR = 2

LOG_FORMAT = "[%(levelname)s] %(message)s"


def print_error(message: str) -> None:
    """Print error message to stderr.

    Args:
        message: Error message to print.
    """
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)


def print_success(message: str) -> None:
    """Print success message.

    Args:
        message: Success message to print.
    """
    click.echo(click.style(message, fg="green"))


def print_warning(message: str) -> None:
    """Print warning message.

    Args:
        message: Warning message to print.
    """
    click.echo(click.style(message, fg="yellow"))


def read_text_file(path: Path) -> str:
    """Read a text file, replacing bytes that are not valid UTF-8.

    Args:
        path: File to read.
    """
    return path.read_bytes().decode("utf-8", errors="replace")


@click.group()
@click.version_option(version="0.1.0", prog_name="hotzone")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Hotzone level tools - decode level configs, briefings and terrain.

    Reads .lfl, .cam, .slk and .dph files from a game's GRIDS directory.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


@cli.command()
@click.argument("lfl_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def info(lfl_path: Path) -> None:
    """Display information about a level.

    LFL_PATH is the level's .lfl file. Linked files are looked up in the
    same directory.
    """
    try:
        loader = LevelLoader(LocalFileAccess(lfl_path.parent))
        level = loader.load(lfl_path.name)

        click.echo(f"Level: {level.name}")
        for role, path in level.files.items():
            status = "missing" if role in level.missing else "ok"
            click.echo(f"  {role.upper()}: {path} ({status})")

        if level.composite is not None:
            composite = level.composite
            click.echo(f"Binary offset: {composite.binary_offset}")
            click.echo(f"Textures: {composite.texture_count}")
            click.echo(f"Model names: {len(composite.model_names)}")
            click.echo(f"Objects: {len(composite.objects)}")
            click.echo(f"Citadels: {len(composite.citadels)}")
            if composite.degraded:
                print_warning(f"Diagnostics: {len(composite.diagnostics)}")

        if level.narrative is not None:
            click.echo(f"Ranking: {level.narrative.ranking or 'none'}")
            objective = level.narrative.objective.strip() or "No Objective Data"
            click.echo(f"Objective: {objective.splitlines()[0]}")

        heightmap = level.heightmap
        if heightmap is not None:
            click.echo(f"Heights: {int(heightmap.min())}-{int(heightmap.max())}")

        if level.minimap is not None:
            click.echo(f"Minimap: {len(level.minimap)} bytes")

        for role, message in level.missing.items():
            print_warning(f"Missing {role}: {message}")

    except LevelLoadError as e:
        print_error(str(e))
        sys.exit(EXIT_USER_ERROR)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        sys.exit(EXIT_SYSTEM_ERROR)


@cli.command()
@click.argument("slk_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-f",
    "output_format",
    type=click.Choice(["json", "numpy"]),
    default="json",
    help="Output format (default: json)",
)
@click.option(
    "--layer",
    type=click.Choice(["height", "texture"]),
    default="height",
    help="Grid to save in numpy format (default: height)",
)
@click.option(
    "--output-file",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file path (default: stdout for json, required for numpy)",
)
def parse(slk_path: Path, output_format: str, layer: str, output_file: Optional[Path]) -> None:
    """Parse a local .slk file and output terrain and object data.

    SLK_PATH is the path to a composite .slk file to parse.
    """
    try:
        level = decode_composite(slk_path.read_bytes())

        if output_format == "json":
            result = {
                "binary_offset": level.binary_offset,
                "footer_offset": level.footer_offset,
                "texture_count": level.texture_count,
                "grid_shape": [GRID_SIZE, GRID_SIZE],
                "height_range": [int(level.height.min()), int(level.height.max())],
                "model_names": {str(k): v for k, v in sorted(level.model_names.items())},
                "objects": [obj.to_dict() for obj in level.objects],
                "citadels": [obj.to_dict() for obj in level.citadels],
                "diagnostics": [d.to_dict() for d in level.diagnostics],
            }
            json_output = json.dumps(result, indent=2)

            if output_file:
                output_file.write_text(json_output)
                print_success(f"Wrote JSON to {output_file}")
            else:
                click.echo(json_output)

        elif output_format == "numpy":
            if not output_file:
                print_error("--output-file is required for numpy format")
                sys.exit(EXIT_USER_ERROR)

            grid = level.height if layer == "height" else level.texture_index
            np.save(output_file, grid)
            print_success(f"Wrote {layer} grid to {output_file}")
            click.echo(f"  Shape: {grid.shape}")
            click.echo(f"  Dtype: {grid.dtype}")

    except FileNotFoundError:
        print_error(f"File not found: {slk_path}")
        sys.exit(EXIT_USER_ERROR)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        sys.exit(EXIT_SYSTEM_ERROR)


@cli.command()
@click.argument("cam_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def narrative(cam_path: Path) -> None:
    """Print a .cam briefing as JSON.

    CAM_PATH is the path to a .cam briefing file.
    """
    try:
        record = decode_narrative(read_text_file(cam_path))
        click.echo(json.dumps(record.to_dict(), indent=2))
    except FileNotFoundError:
        print_error(f"File not found: {cam_path}")
        sys.exit(EXIT_USER_ERROR)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        sys.exit(EXIT_SYSTEM_ERROR)


@cli.command()
@click.argument("lfl_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def config(lfl_path: Path) -> None:
    """Print a .lfl level config as JSON.

    LFL_PATH is the path to a .lfl file.
    """
    try:
        click.echo(json.dumps(decode_config(read_text_file(lfl_path)), indent=2))
    except FileNotFoundError:
        print_error(f"File not found: {lfl_path}")
        sys.exit(EXIT_USER_ERROR)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        sys.exit(EXIT_SYSTEM_ERROR)


@cli.command()
@click.argument("dph_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output-file",
    "-o",
    type=click.Path(path_type=Path),
    required=True,
    help="Output .npy file path",
)
def depth(dph_path: Path, output_file: Path) -> None:
    """Convert a .dph heightmap to a numpy array file.

    DPH_PATH is the path to a .dph depth file.
    """
    try:
        heights = decode_fixed_heightmap(dph_path.read_bytes())
        np.save(output_file, heights)
        print_success(f"Wrote heightmap to {output_file}")
        click.echo(f"  Shape: {heights.shape}")
        click.echo(f"  Range: {int(heights.min())}-{int(heights.max())}")
    except FileNotFoundError:
        print_error(f"File not found: {dph_path}")
        sys.exit(EXIT_USER_ERROR)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        sys.exit(EXIT_SYSTEM_ERROR)


if __name__ == "__main__":
    cli()
