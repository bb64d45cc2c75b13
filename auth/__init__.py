"""auth/ -- Authentication package for the assignment tracker.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, web/, or tracker/.
api/ and web/ import from auth/, not the other way around.
"""
