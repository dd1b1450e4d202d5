"""
KYB Intel: Entity Risk & Relationship Intelligence Engine.

Architecture:
    kybintel/
    ├── api/             # FastAPI routers (HTTP layer)
    ├── engine/          # Pure computations (clustering, scoring, graph, timeline)
    ├── middleware/      # Error handling, request context
    ├── schemas/         # Pydantic input records and response models
    └── services/        # Registry client, resilience, request orchestration

Module Boundaries:
    - The registry is a READ-ONLY collaborator: records arrive already fetched
    - Engine components never call each other and hold no state between calls
    - Every heuristic weight lives in config, never inline
    - A failed upstream category degrades to empty; only a required record fails the request

Data Flow:
    Presentation → Router → Registry fetches (concurrent) → Engine → JSON result

Version: 1.0.0
"""

__version__ = "1.0.0"
