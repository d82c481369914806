"""HTTP boundary: dependencies, schemas, error handlers and routers."""
