"""Ski Track Planner - Least-effort ski touring tracks on real terrain.

Plans the cheapest track through an ordered list of waypoints over a Digital
Elevation Model, never crossing user-supplied barrier lines:
- Lazily generated grid graph with terrain-aware edge costs
- Pluggable trip profiles (ski touring pace table, linear climb penalty)
- Optional two-pass refinement inside a corridor around the coarse route
- GPX export with length, ascent and time estimates

Modules:
    core: Foundation classes (geo frame, DEM service, cost models, graph, search)
    model: Data structures (Coordinate, BarrierSegment, RouteRequest, Track)
    generators: Multi-waypoint route composition
    cli: Command line entry point

Example:
    from skitrack_planner.core import DEMService
    from skitrack_planner.generators import RouteComposer
    from skitrack_planner.model import RouteRequest
"""
