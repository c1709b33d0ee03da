"""auth/ -- Challenge-response session authentication core for SessionGate.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or client/.
api/ and client/ import from auth/, not the other way around.
"""
