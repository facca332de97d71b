"""Route generation for multi-waypoint tracks.

Provides the RouteComposer, which searches every consecutive waypoint pair
on a shared terrain graph and concatenates the fragments into one Track.
"""

from skitrack_planner.generators.route_composer import RouteComposer, plan_route

__all__ = [
    "RouteComposer",
    "plan_route",
]
