import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from .config import LOGGER_NAME, SENTINEL, VERSION, build_config, no_delay_config
from .exceptions import InvalidRequestError, SessionError
from .export import SUPPORTED_FORMATS, save_results
from .logging_setup import setup_logging
from .models import ScrapeRequest
from .scraper import GoogleMapsScraper


def build_parser():
    parser = argparse.ArgumentParser(description=f'Google Maps Business Scraper v{VERSION}')

    parser.add_argument('-q', '--query', type=str, help='What to search for (e.g., "coffee shops")')
    parser.add_argument('-l', '--location', type=str, help='Where to search (e.g., "Seattle")')
    parser.add_argument('--limit', type=int, default=20, help='Maximum number of businesses to scrape (default: 20)')
    parser.add_argument('--headless', action=argparse.BooleanOptionalAction, default=True, help='Run in headless mode (default) or visible (--no-headless)')
    parser.add_argument('--formats', nargs='+', choices=SUPPORTED_FORMATS, default=list(SUPPORTED_FORMATS), help='Output formats (default: xlsx csv json)')
    parser.add_argument('--output-dir', type=str, default='results', help='Directory for result files (default: results)')
    parser.add_argument('--log-dir', type=str, default='logs', help='Directory for log files (default: logs)')

    # Advanced arguments
    parser.add_argument('--debug', action='store_true', help='Enable debug logging on the console')
    parser.add_argument('--driver-path', type=str, help='Path to chromedriver executable')
    parser.add_argument('--chrome-binary', type=str, help='Path to Chrome binary')
    parser.add_argument('--user-data-dir', type=str, help='Chrome profile directory')
    parser.add_argument('--proxy', type=str, help='Proxy server, e.g. http://host:port')
    parser.add_argument('--no-delays', action='store_true', help='Skip human-like pauses (faster, more likely to be blocked)')
    return parser


def prompt_request():
    """Ask for the search on stdin when no arguments were given"""
    print("\n🌍 GOOGLE MAPS BUSINESS SCRAPER (Interactive Mode) 🌍")
    print("=====================================================")
    query = input("What are you looking for? (e.g., coffee shops): ").strip()
    location = input("Where? (e.g., Seattle): ").strip()
    limit_text = input("How many businesses? [20]: ").strip()
    try:
        limit = int(limit_text) if limit_text else 20
    except ValueError:
        print(f"Invalid number '{limit_text}', using 20.")
        limit = 20
    return query, location, limit


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if argv is None and len(sys.argv) <= 1:
        query, location, limit = prompt_request()
    elif not args.query or not args.location:
        print("\nError: --query and --location are required.")
        parser.print_help()
        return 2
    else:
        query, location, limit = args.query, args.location, args.limit

    session_id = datetime.now().strftime('%Y%m%d_%H%M%S')
    setup_logging(session_id, log_dir=args.log_dir, debug=args.debug)
    logger = logging.getLogger(LOGGER_NAME)

    overrides = {
        "headless": args.headless,
        "driver_path": args.driver_path,
        "chrome_binary": args.chrome_binary,
        "user_data_dir": args.user_data_dir,
        "proxy": args.proxy,
        "show_progress": True,
    }
    config = no_delay_config(**overrides) if args.no_delays else build_config(overrides)

    try:
        request = ScrapeRequest(query, location, limit)
    except InvalidRequestError as e:
        print(f"\nError: {e}")
        return 2

    print("\n🌍 GOOGLE MAPS BUSINESS SCRAPER 🌍")
    print("==================================")
    print(f"Search: '{request.subject}' in '{request.location}'")
    print(f"Limit: {request.limit}")
    print(f"Session ID: {session_id}\n")

    scraper = GoogleMapsScraper(config)
    try:
        results = scraper.run(request)
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        return 130
    except InvalidRequestError as e:
        print(f"\nError: {e}")
        return 2
    except SessionError as e:
        print(f"\n❌ Browser session failed: {e}")
        print("Check logs for details.")
        return 1
    except Exception as e:
        print(f"\n❌ An unexpected critical error occurred: {e}")
        print("Check logs for detailed traceback.")
        logger.error("Critical error in main execution", exc_info=True)
        return 1

    print(f"\n✅ Scraping finished. Found {len(results)} businesses "
          f"({scraper.stats['listing_errors']} listings skipped).")
    if results:
        emails_found = sum(1 for r in results if r.email != SENTINEL)
        print(f"   - Businesses with Email: {emails_found}")
        written = save_results(results, args.output_dir, session_id, args.formats)
        print(f"\nData saved to '{Path(args.output_dir)}' directory:")
        for filepath in written:
            print(f"  - {filepath.name}")
    else:
        print("\n⚠️ No businesses found, nothing saved.")

    print(f"\n📄 Logs saved in '{args.log_dir}' folder (Session ID: {session_id})")
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
