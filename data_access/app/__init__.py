"""
Data access application package.

Structure:
- app.caching: Request keys, the query cache store and mutation dispatch.
- app.normalization: Alias tables, canonical entities and pagination.
- app.adapters: HTTP transport and error translation.
- app.resources: Resource registry, façades and the application root.
"""
