"""
Gymn API — Application Package Initializer
============================================

What: REST gateway for the Gymn class-management web application.
Who:  Imported by uvicorn (via gymn.server.run), pytest, and the route
      collaborators that plug into the mounted route groups.

Architecture Note:
    ┌─────────────────────────────────────┐
    │     Process lifecycle (server.py)   │  ← preflight, exit codes
    ├─────────────────────────────────────┤
    │   Request pipeline (pipeline/)      │  ← CORS, body, cookies, static, log
    ├─────────────────────────────────────┤
    │   Routes (health, groups, 404)      │  ← HTTP surface
    ├─────────────────────────────────────┤
    │   Database connector (database.py)  │  ← single MongoDB handle
    └─────────────────────────────────────┘

    Configuration (config.py) is built once and handed to each layer;
    nothing below the process layer reads the environment directly.
"""

__version__ = "1.0.0"
