"""
LinkMe Backend - API Routes Package
=====================================

Route Inventory:
    - analytics.py:     /api/analytics     (view tracking + owner dashboards)
    - profiles.py:      /api/profiles      (card CRUD, public slug lookup)
    - social_links.py:  /api/social-links  (card links, click counter)
    - users.py:         /api/users/me      (account)
    - health.py:        /health

Handlers stay thin: parse the request, resolve the caller, call a service.
"""
