"""
Portal Backend - Application Package
======================================

Layers:

    ┌─────────────────────────────────────┐
    │  Middleware (request id, access log,│
    │  auth gate, rate limit guards)      │
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  raise PortalError subclasses
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
