"""Scenarios that exercise the workflow end to end."""

from deal_flow.scenarios.walkthrough import ReservationWalkthroughScenario

__all__ = ["ReservationWalkthroughScenario"]
