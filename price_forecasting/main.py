import argparse
import json
import sys
from datetime import date, datetime

from tabulate import tabulate

from price_forecasting.config import config
from price_forecasting.db import db, session_scope
from price_forecasting.logging_setup import logger, get_logger, log_exception
from price_forecasting.exceptions import PriceForecastingError

def init_application():
    """Initialize application components."""
    db.initialize()

    log = logger.app_logger
    log.info("Price Forecasting Engine initialized")
    log.info(f"Using database: {config.get_db_url()}")

    return True

def _default(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)

def _print(result):
    print(json.dumps(result, indent=2, default=_default))

def _parse_pair(value):
    try:
        product_id, market_id = value.split(':')
        return int(product_id), int(market_id)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected PRODUCT:MARKET, got {value!r}")

def generate_forecast(args):
    """Generate the forecast horizon for one pair."""
    from price_forecasting.batch.forecast_job import generate_single_forecast

    log = get_logger('forecast')
    log.info(f"Starting forecast generation with parameters: {args}")

    result = generate_single_forecast(args.product_id, args.market_id, force=args.force)
    _print(result)
    return result.get('success', False)

def bulk_run(args):
    """Forecast every active pair, in the foreground or the background."""
    from price_forecasting.batch.forecast_job import get_orchestrator

    orchestrator = get_orchestrator()
    pairs = args.pair or None

    if args.background:
        ack = orchestrator.trigger_bulk_run(pairs=pairs, force=args.force)
        _print(ack)
        # Keep the process alive until the job has run
        orchestrator.wait(ack['job_id'])
        return True

    results = orchestrator.run_bulk_forecast(pairs=pairs, force=args.force)
    summary = {k: v for k, v in results.items() if k != 'chunks'}
    _print(summary)
    return results['failed'] == 0

def apply_override(args):
    """Pin forecasts to a manual price or a trend directive."""
    from price_forecasting.services.override_service import OverrideRequest, OverrideService

    request = OverrideRequest(
        product_id=args.product_id,
        market_id=args.market_id,
        product_ids=args.product_ids,
        market_ids=args.market_ids,
        pairs=args.pair,
        target_date=args.target_date,
        force_trend=args.trend,
        manual_price=args.price,
        reason=args.reason,
        override_all_markets=args.all_markets,
        override_all_products=args.all_products
    )

    with session_scope() as session:
        result = OverrideService(session).apply_override(request)

    table_data = [
        [r['product_name'] or r['product_id'], r['market_name'] or r['market_id'],
         r['old_price'], r['new_price'], 'OK' if r['success'] else 'FAILED', r['message']]
        for r in result['results']
    ]
    print(tabulate(table_data, headers=['Product', 'Market', 'Old Price', 'New Price', 'Result', 'Message']))
    print(f"\n{result['message']} for {result['target_date']} "
          f"(success: {result['success_count']}, failed: {result['failed_count']})")
    return result['success']

def show_calibration(args):
    """Print the calibration table for a market."""
    from price_forecasting.services.reporting_service import ReportingService

    with session_scope() as session:
        table = ReportingService(session).get_calibration_table(
            args.market_id, page=args.page, size=args.size
        )

    table_data = []
    for item in table['items']:
        table_data.append([
            item['product_id'],
            item['product_name'],
            f"{item['current_price']:.2f}",
            f"{item['forecast_price']:.2f}",
            f"{item['trend_percentage']:+.1f}%",
            f"{item['confidence_score'] * 100:.0f}% {item['confidence_level']}",
            item['status']
        ])

    print(f"\nCalibration for {table['market_name']} on {table['target_date']}:")
    print(tabulate(table_data, headers=['ID', 'Product', 'Current', 'Forecast', 'Trend', 'Confidence', 'Status']))
    print(f"\nPage {table['page'] + 1} of {max(1, table['total_pages'])} ({table['total_items']} products)")
    return True

def show_stats(args):
    """Print dashboard statistics and per-market summaries."""
    from price_forecasting.services.reporting_service import ReportingService

    with session_scope() as session:
        service = ReportingService(session)
        stats = service.get_dashboard_stats()
        markets = service.get_active_markets()

    accuracy = 'N/A' if stats['model_accuracy'] is None else f"{stats['model_accuracy']:.1f}%"
    print(f"\nForecasts for {stats['target_date']}: {stats['total_forecasts']} "
          f"({stats['anomalies']} anomalies)")
    print(f"Active products: {stats['total_products']}, active markets: {stats['active_markets']}")
    print(f"Model accuracy: {accuracy} ({stats['accuracy_status']})")
    print(f"Last updated: {stats['last_updated']}")

    table_data = [
        [m['id'], m['name'], m['location'], m['product_count'], m['forecast_count'], m['anomaly_count']]
        for m in markets
    ]
    print()
    print(tabulate(table_data, headers=['ID', 'Market', 'Location', 'Products', 'Forecasts', 'Anomalies']))
    return True

def build_parser():
    parser = argparse.ArgumentParser(description='Commodity Price Forecasting Engine')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    init_parser = subparsers.add_parser('init-db', help='Create the database schema')
    init_parser.add_argument('--drop', action='store_true', help='Drop existing tables first')

    gen_parser = subparsers.add_parser('generate', help='Forecast one product/market pair')
    gen_parser.add_argument('--product-id', type=int, required=True)
    gen_parser.add_argument('--market-id', type=int, required=True)
    gen_parser.add_argument('--force', action='store_true', help='Overwrite overridden forecasts')

    bulk_parser = subparsers.add_parser('bulk-run', help='Forecast all active pairs')
    bulk_parser.add_argument('--pair', type=_parse_pair, action='append',
                             help='Restrict to PRODUCT:MARKET (repeatable)')
    bulk_parser.add_argument('--force', action='store_true', help='Overwrite overridden forecasts')
    bulk_parser.add_argument('--background', action='store_true',
                             help='Trigger the run and print the acknowledgement')

    override_parser = subparsers.add_parser('override', help='Manually pin forecasts')
    override_parser.add_argument('--product-id', type=int)
    override_parser.add_argument('--market-id', type=int)
    override_parser.add_argument('--product-ids', type=int, nargs='+')
    override_parser.add_argument('--market-ids', type=int, nargs='+')
    override_parser.add_argument('--pair', type=_parse_pair, action='append',
                                 help='PRODUCT:MARKET (repeatable)')
    override_parser.add_argument('--target-date', help='YYYY-MM-DD, defaults to tomorrow')
    override_parser.add_argument('--trend', help='Directive such as "+10%% Increase"')
    override_parser.add_argument('--price', type=float, help='Literal price to pin')
    override_parser.add_argument('--reason', required=True)
    override_parser.add_argument('--all-markets', action='store_true')
    override_parser.add_argument('--all-products', action='store_true')

    cal_parser = subparsers.add_parser('calibration', help='Show the calibration table for a market')
    cal_parser.add_argument('--market-id', type=int, required=True)
    cal_parser.add_argument('--page', type=int, default=0)
    cal_parser.add_argument('--size', type=int, default=20)

    subparsers.add_parser('stats', help='Show dashboard statistics')

    return parser

def main(argv=None):
    """Main application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    init_application()

    handlers = {
        'generate': generate_forecast,
        'bulk-run': bulk_run,
        'override': apply_override,
        'calibration': show_calibration,
        'stats': show_stats
    }

    try:
        if args.command == 'init-db':
            if args.drop:
                db.drop_all_tables()
            db.create_all_tables()
            logger.app_logger.info("Database schema created")
            return 0

        return 0 if handlers[args.command](args) else 1

    except PriceForecastingError as e:
        logger.app_logger.error(str(e))
        _print(e.to_dict())
        return 1

    except Exception as e:
        log_exception('app', e, f"Unhandled error in '{args.command}'")
        return 1

if __name__ == "__main__":
    sys.exit(main())
