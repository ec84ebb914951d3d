import argparse
import logging
import sys

from dotenv import load_dotenv

from constants import (
    DEFAULT_BASE_URL,
    DEFAULT_MONTHS,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_USERNAME,
    REFERENCE_YEAR,
)
from commons import (
    authenticate,
    download_recordings,
    export_recordings_json,
    get_password,
    get_recordings_by_month,
    month_output_dir,
    parse_months,
)
from errors import PVWAError

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Export PSM session recordings and their metadata, month by month"
    )
    parser.add_argument("--baseURL", dest="base_url", default=DEFAULT_BASE_URL,
                        help="The base URL for PVWA")
    parser.add_argument("--username", default=DEFAULT_USERNAME,
                        help="The username for a user with auditor rights")
    parser.add_argument("--months", default=DEFAULT_MONTHS,
                        help="Months to process (e.g. '5,6,7' or '1-12')")
    parser.add_argument("--year", type=int, default=REFERENCE_YEAR,
                        help="Year the months belong to")
    parser.add_argument("--output-dir", default=DEFAULT_OUTPUT_DIR,
                        help="Directory that receives one sub-directory per month")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def setup_logging(verbose=False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="time=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s",
        stream=sys.stdout,
    )


def export_month(session, month, year, output_root):
    """
    Save metadata and videos of one month's recordings

    :return: number of recordings exported
    """
    logger.info("processing month=%d year=%d", month, year)
    try:
        recordings = get_recordings_by_month(session, month, year)
    except PVWAError as e:
        raise type(e)(f"error getting recordings for month {month}: {e}") from e

    logger.info(
        "found recordings month=%d count=%d retrieved=%d",
        month, recordings.total, len(recordings),
    )
    output_path = month_output_dir(output_root, month)
    export_recordings_json(output_path, recordings)
    download_recordings(session, output_path, recordings)
    return len(recordings)


def run(args, password=None):
    months = parse_months(args.months)
    if password is None:
        password = get_password(args.username)

    session = authenticate(args.base_url, args.username, password)

    exported = 0
    for month in months:
        exported += export_month(session, month, args.year, args.output_dir)
    return exported


def main(argv=None):
    load_dotenv()
    args = parse_args(argv)
    setup_logging(args.verbose)

    logger.info("starting recording export")
    try:
        exported = run(args)
    except PVWAError as e:
        logger.error("export failed: %s", e)
        return 1

    logger.info("recording export finished recordings=%d", exported)
    return 0


if __name__ == "__main__":
    sys.exit(main())
