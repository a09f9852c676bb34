# src/sdmclim/__main__.py
import argparse
import logging
import sys

import pandas as pd

from sdmclim.errors import SdmClimError
from sdmclim.grids import BoundingBox
from sdmclim.io import GridFetcher, VariableSpec, serialize_grid
from sdmclim.sampling import sample_background, thin_points
from sdmclim.utils.constants import FORMAT_EXTENSIONS

log = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="sdmclim", description="Climate grids and background sampling for SDMs")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="Download a climate field and save it")
    fetch.add_argument("--period", required=True)
    fetch.add_argument("--variable", required=True)
    fetch.add_argument("--parameter", default=None)
    fetch.add_argument("--resolution", default="range")
    fetch.add_argument("--years", type=int, nargs="+", default=None)
    fetch.add_argument("--scenario", default=None)
    fetch.add_argument("--bbox", type=float, nargs=4, default=None,
                       metavar=("XMIN", "YMIN", "XMAX", "YMAX"))
    fetch.add_argument("--format", choices=sorted(FORMAT_EXTENSIONS), default="netcdf")
    fetch.add_argument("--out", required=True)
    fetch.add_argument("--base-url", default=None)
    fetch.add_argument("--timeout", type=float, default=None)

    thin = sub.add_parser("thin", help="Keep one occurrence per grid cell")
    thin.add_argument("--points", required=True, help="CSV with lon/lat columns")
    thin.add_argument("--resolution", type=float, required=True)
    thin.add_argument("--seed", type=int, default=None)
    thin.add_argument("--out", required=True)

    background = sub.add_parser("background", help="Draw background points around presences")
    background.add_argument("--points", required=True, help="CSV with lon/lat columns")
    background.add_argument("--radius", type=float, required=True, help="Buffer radius in meters")
    background.add_argument("--n", type=int, required=True)
    background.add_argument("--resolution", type=float, required=True)
    background.add_argument("--seed", type=int, default=None)
    background.add_argument("--out", required=True)

    return parser.parse_args(argv)


def run_fetch(args):
    spec = VariableSpec(
        period=args.period,
        variable=args.variable,
        parameter=args.parameter,
        temporal_resolution=args.resolution,
        scenario=args.scenario,
        time_selector=args.years,
    )
    window = BoundingBox(*args.bbox) if args.bbox else None

    kwargs = {"base_url": args.base_url}
    if args.timeout is not None:
        kwargs["timeout"] = args.timeout
    grid = GridFetcher(**kwargs).fetch(spec, window)
    serialize_grid(grid, args.format, args.out, spec)


def run_thin(args):
    points = pd.read_csv(args.points)
    thin_points(points, args.resolution, args.seed).to_csv(args.out, index=False)


def run_background(args):
    points = pd.read_csv(args.points)
    result = sample_background(points, args.radius, args.n, args.resolution, args.seed)
    result.background[["lon", "lat"]].to_csv(args.out, index=False)


COMMANDS = {
    "fetch": run_fetch,
    "thin": run_thin,
    "background": run_background,
}


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    try:
        COMMANDS[args.command](args)
    except SdmClimError as e:
        log.error("%s: %s", type(e).__name__, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
