"""Host/frame command bus.

Layout mirrors the flow of one request: `core` (channel, readiness gate,
router, emitter), `contracts` (type catalog and payloads), `handlers`,
`orders` / `users` (domain), `store` (entity store port), `host` (assembly
and service), `frame` (client side), `api` (HTTP status).
"""
