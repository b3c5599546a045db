"""auth/ -- Accounts, password hashing and session lifecycle for SellerHub.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or sellers/.
api/ imports from auth/, not the other way around.
"""
