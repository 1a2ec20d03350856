"""
SolisCloud bridge package.

Polls the SolisCloud platform API with HMAC-signed requests on two cadences
(realtime day series, static listings and metadata), flattens every response
into dot-separated paths and persists them as typed, unit-annotated points in
a local SQLite store.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-101)

TODO:
- None
"""
