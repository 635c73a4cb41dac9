"""Entrypoint to run the Weather Concierge locally."""

import argparse
import json

from concierge_app.app import WeatherConciergeApp
from evaluation.harness import run_smoke_checks


def main() -> None:
    parser = argparse.ArgumentParser(description="Weather suggestions for upcoming calendar events")
    parser.add_argument("--smoke", action="store_true", help="Run the offline evaluation scenarios and exit")
    parser.add_argument("--search", metavar="QUERY", help="Search for a home address")
    parser.add_argument("--daily", type=int, metavar="DAYS", help="Print the daily forecast for home")
    args = parser.parse_args()

    if args.smoke:
        for line in run_smoke_checks():
            print(line)
        return

    app = WeatherConciergeApp()
    if args.search:
        for location in app.search_home(args.search):
            print(f"{location.address} ({location.coordinates.latitude:.4f}, {location.coordinates.longitude:.4f})")
        return
    if args.daily:
        for day in app.home_daily_forecast(args.daily):
            print(f"{day.date.isoformat()}: {day.condition}, {day.high:g}/{day.low:g}°F, {day.precipitation_chance}% rain")
        return

    print(json.dumps(app.dashboard(), indent=2))


if __name__ == "__main__":
    main()
