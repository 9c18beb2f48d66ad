"""
Feature modules live under this package.

Keep module boundaries clean: each module owns its models, service and JSON
endpoints, while reusing platform primitives (auth, DB session, search, cache).
"""
