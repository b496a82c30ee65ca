"""
LinkMe Backend - Services Layer
=================================

Business logic between the HTTP routes and the database. Services are
stateless singletons; each call receives the request's AsyncSession.

Service Inventory:
    - enrichment:           client IP, user agent and GeoIP resolution
    - ownership:            the single-query profile ownership guard
    - view_service:         view recorder and retention sweeper
    - analytics_service:    per-profile and per-account aggregates
    - profile_service:      profile CRUD and public card lookup
    - social_link_service:  card links and click counting
    - user_service:         the caller's account
    - params:               lenient coercion of query/body values
"""
