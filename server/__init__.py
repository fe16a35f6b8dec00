"""Planet HTTP server."""
