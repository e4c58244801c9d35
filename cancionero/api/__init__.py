"""HTTP layer: FastAPI routers, schemas, admin auth and middleware."""
