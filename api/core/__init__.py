"""
Shared, cross-cutting code for the API.

`core/` holds the building blocks every feature uses: settings, the
connection pool, the query executor, the error taxonomy, and the startup
location guard. Feature-specific SQL and business rules live in the
corresponding feature package (e.g. `counters/`, `maintenance_types/`).
"""
