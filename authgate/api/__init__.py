"""HTTP surface - FastAPI application, routes and dependencies."""
