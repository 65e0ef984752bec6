"""
nocdata_api — HTTP health service for the seeding pipeline.

Start with:
    nocdata-seed serve
    uvicorn nocdata_api.app:create_app --factory --port 3000

Endpoints:
    GET /health    — database round-trip (503 when unhealthy)
    GET /ready     — process liveness
    GET /progress  — last seeding checkpoint
"""

__version__ = "0.1.0"
