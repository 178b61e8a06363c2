# Routes package init
"""
Gymn API — Routes Package
===========================

Route Inventory:
    - health.py:    GET /health             (liveness, always 200)
    - groups.py:    /api/auth, /api/users, /api/instructores,
                    /api/classes, /api/youtube (collaborator routers)
    - fallback.py:  any unmatched path      (404 "Ruta no encontrada")

Inclusion order is health → groups → fallback; the fallback must stay
last because it matches every path.
"""
