import sys

# Argument parsing
from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Configuration
from iconfig.iconfig import iConfig

from loguru import logger

from observatory.model.models import Observation, RenderConfig
from observatory.preprocess.extraction import yearly_observations
from observatory.preprocess.preprocess import TilePyramidBuilder, deviation_grids
from observatory.render.color_scale import DEVIATION_COLORS, TEMPERATURE_COLORS, ColorScale
from observatory.render.tile_renderer import TileRenderer, to_image
from observatory.utils.utils import load_color_scale


def get_args(argv: Optional[List[str]] = None) -> Namespace:
    """Reads command line arguments and returns a Namespace object with them

    Returns:
        Namespace: Namespace object with the command line arguments
    """
    parser = ArgumentParser(
        prog='observatory',
        description='Renders temperature maps from station observations'
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = ArgumentParser(add_help=False)
    common.add_argument(
        "-s", "--stations",
        required=True,
        help="Stations CSV file"
    )
    common.add_argument(
        "-t", "--temperatures",
        required=True,
        help="Temperatures CSV file, '{year}' is replaced by the year (e.g. data/{year}.csv)"
    )
    common.add_argument(
        "-c", "--colors",
        default=None,
        help="JSON color scale, defaults to the built-in scale of the command"
    )
    common.add_argument(
        "-o", "--output",
        required=True,
        help="Output file (globe) or directory (tiles, deviations)"
    )

    globe = subparsers.add_parser("globe", parents=[common], help="Render the whole globe for one year")
    globe.add_argument("year", type=int, help="Year to render")
    globe.add_argument("--width", type=int, default=None, help="Image width in pixels")
    globe.add_argument("--height", type=int, default=None, help="Image height in pixels")

    tiles = subparsers.add_parser("tiles", parents=[common], help="Render temperature tile pyramids")
    tiles.add_argument("years", type=int, nargs="+", help="Years to render")

    deviations = subparsers.add_parser("deviations", parents=[common], help="Render deviation tile pyramids")
    deviations.add_argument("years", type=int, nargs="+", help="Years to render")
    deviations.add_argument(
        "-n", "--normals",
        required=True,
        help="Range of years defining the normals, e.g. 1975-1989"
    )

    args = parser.parse_args(argv)

    if args.command == "deviations":
        try:
            start, end = (int(year) for year in args.normals.split("-"))
        except ValueError:
            parser.error(f"Invalid normals range '{args.normals}', expected START-END")
        args.normal_years = list(range(start, end + 1))

    return args


def load_years(args: Namespace, years: List[int]) -> Dict[int, List[Observation]]:
    """Yearly average observations for every requested year."""
    return {
        year: yearly_observations(year, args.stations, args.temperatures.format(year=year))
        for year in years
    }


def color_scale(args: Namespace, default) -> ColorScale:
    if args.colors:
        return load_color_scale(args.colors)
    return ColorScale(default)


def main(argv: Optional[List[str]] = None) -> int:
    # Load environment variables
    load_dotenv('.env')
    config = RenderConfig.from_config(iConfig())

    args = get_args(argv)
    output = Path(args.output)

    try:
        if args.command == "globe":
            observations = load_years(args, [args.year])[args.year]
            pixels = TileRenderer(config).render_globe(
                observations, color_scale(args, TEMPERATURE_COLORS), width=args.width, height=args.height
            )
            output.parent.mkdir(parents=True, exist_ok=True)
            to_image(pixels).save(output)
            logger.info(f"Globe written to {output}")

        elif args.command == "tiles":
            builder = TilePyramidBuilder(output, color_scale(args, TEMPERATURE_COLORS), config)
            builder.build(sorted(load_years(args, args.years).items()))

        elif args.command == "deviations":
            data = load_years(args, sorted(set(args.years) | set(args.normal_years)))
            grids = deviation_grids(data, args.normal_years, years=args.years)
            builder = TilePyramidBuilder(output, color_scale(args, DEVIATION_COLORS), config)
            builder.build_grids(grids)

    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Observatory {args.command} failed: {e}")
        return 1

    return 0


# Main
if __name__ == '__main__':
    sys.exit(main())
