# Services package init
"""
Portal Backend - Services Layer
=================================

What:  Business rules between the HTTP routes and the database or disk.
How:   Each service is a module-level singleton (or, for storage, one instance
       on app.state). Methods take the AsyncSession first and raise
       PortalError subclasses; routes translate nothing themselves.

Service Inventory:
    - UserService: accounts, profiles, theme preference, roles
    - AuthService: registration, credential checks, password reset tokens
    - ArticleService: listing, lookup, authoring, view counting
    - CategoryService: category CRUD with delete protection
    - StorageService: bucket-scoped file storage on local disk
"""
