"""auth/ -- Authentication and authorization package for Gatekeeper.

Layer rule: auth/ imports stdlib, third-party libraries, mail/, and (in
service.py only) core/config. It does NOT import from api/ or posts/.
api/ imports from auth/, not the other way around.
"""
