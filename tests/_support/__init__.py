"""
Test support for spine-ops tests.

- models: plain entity classes registered with the default entity registry
- ops: op classes shared across test modules
"""
