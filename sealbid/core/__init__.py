"""
Sealbid core: opaque value types, capability registry and the auction engine.
"""
