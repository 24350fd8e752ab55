"""REST API surface: app factory, middleware, routes."""
