"""Core primitives shared by the spine-ops framework: errors, settings, protocols, timestamps."""
