##########################################################################################
#
# Script name: main.py
#
# Description: CLI entrypoint for generating the daily Porto Tech News report.
#
##########################################################################################

import argparse
import logging
import os
import sys
from datetime import date, datetime
from functools import partial
from zoneinfo import ZoneInfo

from .config import load_settings
from .ingestion import (
    JsonFileSeenStore,
    MemorySeenStore,
    build_sample_records,
    gather_records,
    load_records_file,
)
from .pipeline import run_pipeline
from .report import write_report


# ****************************************************************************************
# Global data and configuration
# ****************************************************************************************

log = logging.getLogger(os.path.basename(sys.argv[0]))
log.setLevel(logging.DEBUG)
log.propagate = False
formatter = logging.Formatter(
    '%(asctime)-15s [%(funcName)25s:%(lineno)-5s] %(levelname)-8s %(message)s'
)

root_log = logging.getLogger()
root_log.setLevel(logging.DEBUG)


# ****************************************************************************************
# Functions
# ****************************************************************************************


def _configure_file_logging() -> None:
    fh = logging.FileHandler('porto_tech_news.log', mode='w')
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)
    if not any(isinstance(handler, logging.FileHandler) for handler in log.handlers):
        log.addHandler(fh)
    if not any(isinstance(handler, logging.FileHandler) for handler in root_log.handlers):
        root_log.addHandler(fh)


def _resolve_report_date(explicit_date: str | None) -> str:
    if explicit_date:
        return explicit_date
    tz_name = os.getenv('REPORT_TIMEZONE') or 'Europe/Lisbon'
    try:
        now = datetime.now(ZoneInfo(tz_name))
    except Exception:  # noqa: BLE001
        now = datetime.now(ZoneInfo('UTC'))
    return now.strftime('%Y-%m-%d')


def build_daily_report(
    report_date: str,
    config_path: str | None,
    input_files: list[str],
    output_dir: str,
    seen_store_path: str | None = None,
    window_hours: float | None = None,
    use_sample_data: bool = False,
) -> None:
    settings = load_settings(config_path)
    if window_hours is not None:
        settings.recency_window_hours = window_hours

    if use_sample_data:
        records = build_sample_records()
        store = MemorySeenStore()
        settings.generation_api_key = ''
        log.debug('Using sample data for report generation.')
    else:
        records = gather_records([partial(load_records_file, path) for path in input_files])
        store = JsonFileSeenStore(seen_store_path or settings.seen_store_path)
        log.debug('Loaded %d raw records from %d source file(s).', len(records), len(input_files))

    report = run_pipeline(records, store, settings)
    if report is None:
        log.info('Nothing to report for %s.', report_date)
        return
    report_path = write_report(report, report_date, output_dir)
    log.info('Report saved to %s', report_path)


# ****************************************************************************************
# Handle the arguments
# ****************************************************************************************


def handle_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Generate the daily Porto Tech News report.')
    parser.add_argument('--date', help='Date string in YYYY-MM-DD format.', default=None)
    parser.add_argument('--config', default=None, help='Path to settings YAML.')
    parser.add_argument(
        '--input',
        action='append',
        default=[],
        help='YAML or JSON file with raw article records. Repeat for several sources.',
    )
    parser.add_argument('--output-dir', default='reports', help='Directory where reports are written.')
    parser.add_argument('--seen-store', default=None, help='Path to the seen-article JSON store.')
    parser.add_argument('--window-hours', type=float, default=None, help='Recency window in hours.')
    parser.add_argument(
        '--sample',
        action='store_true',
        help='Use built-in sample records and skip all network requests.',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output to stdout.')
    parser.add_argument('-q', '--quiet', action='store_true', help='Minimal stdout.')
    args = parser.parse_args()

    _configure_file_logging()

    # Configure stdout logging based on arguments
    ch = logging.StreamHandler(sys.stdout)
    if args.verbose:
        ch.setLevel(logging.DEBUG)
    elif args.quiet:
        ch.setLevel(logging.ERROR)
    else:
        ch.setLevel(logging.INFO)
    ch.setFormatter(formatter)
    log.addHandler(ch)
    root_log.addHandler(ch)

    log.debug('Checking script requirements...')
    if not args.sample and not args.input:
        parser.error('at least one --input file is required unless --sample is given')

    log.info('++++++++++++++++++++++++++++++++++++++++++++++')
    log.info('+  %s', os.path.basename(sys.argv[0]))
    log.info('+  Python Version: %s', sys.version.split()[0])
    log.info('+  Today is: %s', date.today())
    log.info('++++++++++++++++++++++++++++++++++++++++++++++')
    return args


# ****************************************************************************************
# Main
# ****************************************************************************************


def main() -> None:
    args = handle_args()
    report_date = _resolve_report_date(args.date)
    build_daily_report(
        report_date=report_date,
        config_path=args.config,
        input_files=args.input,
        output_dir=args.output_dir,
        seen_store_path=args.seen_store,
        window_hours=args.window_hours,
        use_sample_data=args.sample,
    )


if __name__ == '__main__':
    main()
