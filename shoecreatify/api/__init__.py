"""HTTP layer - FastAPI app, routes, dependencies and error handlers."""
