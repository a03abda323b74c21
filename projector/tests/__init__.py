"""
Test suite for the service binding projector.

Focus areas:
- Projection idempotence and ordering stability
- Unprojection round-trips and isolation between bindings
- Mapping resolution and provenance stash
"""
