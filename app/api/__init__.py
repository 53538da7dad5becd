"""HTTP controllers, middlewares and the route table."""
