"""Lightweight evaluation harness for deterministic scenarios."""

from __future__ import annotations

import asyncio
from typing import Dict, List

from agents.enrichment_agent import EventEnrichmentAgent
from evaluation.scenarios import EVALUATION_NOW, SCENARIOS, EvaluationScenario
from logic import suggestion_engine
from models.event import EnrichedEvent
from models.suggestion import SuggestionPriority
from tools.forecast_provider import MockForecastProvider
from tools.geocoding import MockGeocoder


def _evaluate_expectations(scenario: EvaluationScenario, enriched: EnrichedEvent) -> Dict[str, bool]:
    expectations = scenario.expectations
    suggestions = list(enriched.suggestions)
    texts = [suggestion.text.lower() for suggestion in suggestions]
    categories = {suggestion.category.value for suggestion in suggestions}
    high_categories = {
        suggestion.category.value for suggestion in suggestions if suggestion.priority is SuggestionPriority.HIGH
    }
    checks: Dict[str, bool] = {}

    if "max_suggestions" in expectations:
        checks["max_suggestions"] = len(suggestions) <= int(expectations["max_suggestions"])
    if "min_suggestions" in expectations:
        checks["min_suggestions"] = len(suggestions) >= int(expectations["min_suggestions"])
    if expectations.get("requires_high_any"):
        checks["requires_high_any"] = bool(high_categories & set(expectations["requires_high_any"]))
    if expectations.get("requires_high_all"):
        checks["requires_high_all"] = set(expectations["requires_high_all"]) <= high_categories
    if expectations.get("forbids_categories"):
        checks["forbids_categories"] = not (categories & set(expectations["forbids_categories"]))
    if expectations.get("expects_text"):
        checks["expects_text"] = all(
            any(fragment in text for text in texts) for fragment in expectations["expects_text"]
        )
    if expectations.get("forbids_text"):
        checks["forbids_text"] = not any(
            fragment in text for fragment in expectations["forbids_text"] for text in texts
        )
    if expectations.get("matches_basic"):
        basic = suggestion_engine.generate_basic(scenario.snapshot, scenario.preferences)
        delegated = suggestion_engine.generate(
            scenario.snapshot,
            [],
            scenario.event.start.date_time,
            scenario.event.end.date_time,
            scenario.event.title,
            scenario.preferences,
        )
        checks["matches_basic"] = suggestions == basic == delegated
    if expectations.get("expects_no_weather"):
        checks["expects_no_weather"] = (
            enriched.coordinates is None and enriched.weather is None and not suggestions
        )
    if "expects_coordinates" in expectations:
        checks["expects_coordinates"] = enriched.coordinates == expectations["expects_coordinates"]
    return checks


def run_scenario(scenario: EvaluationScenario) -> Dict[str, object]:
    forecast = MockForecastProvider(snapshot=scenario.snapshot, hourly=scenario.hourly)
    geocoder = MockGeocoder(known=scenario.known_locations)
    agent = EventEnrichmentAgent(forecast, geocoder, clock=lambda: EVALUATION_NOW)

    enriched = asyncio.run(agent.enrich_event(scenario.event, scenario.preferences, scenario.home))
    checks = _evaluate_expectations(scenario, enriched)
    return {
        "scenario": scenario.name,
        "passed": all(checks.values()),
        "checks": checks,
        "suggestion_count": len(enriched.suggestions),
        "suggestions": [suggestion.text for suggestion in enriched.suggestions],
    }


def run_evaluation_suite() -> List[Dict[str, object]]:
    return [run_scenario(scenario) for scenario in SCENARIOS]


def run_smoke_checks() -> List[str]:
    results = run_evaluation_suite()
    return [f"{result['scenario']}: {'passed' if result['passed'] else 'failed'}" for result in results]


__all__ = ["run_evaluation_suite", "run_scenario", "run_smoke_checks"]
