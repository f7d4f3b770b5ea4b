"""posts/ -- The owned content resource guarded by auth/guard.py.

Layer rule: posts/ imports stdlib, third-party libraries, and the engine
factory in auth/store.py (so both stores configure SQLite the same way). It
does NOT import from api/, mail/, or core/.
"""
