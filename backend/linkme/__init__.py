"""
LinkMe Backend - Application Package
======================================

What: Digital business card API: profiles, social links and view analytics.
Who:  Imported by uvicorn (`linkme.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Ownership, enrichment, aggregation
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes extract request data and delegate to services; services never see
    a Request object, only plain values and an AsyncSession.
"""

__version__ = "1.0.0"
