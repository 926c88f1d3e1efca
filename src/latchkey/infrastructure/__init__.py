"""Infrastructure layer: authentication primitives, persistence and HTTP API."""
