"""HTTP surface: REST routes, SSE chat stream, WebSocket status feed, middleware."""
