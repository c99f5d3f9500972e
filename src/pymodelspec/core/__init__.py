"""PyModelSpec core: registry, deferred values, specs and translation."""
