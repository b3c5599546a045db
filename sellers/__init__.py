"""sellers/ -- Global Seller records and their Mercado Libre enrichment.

Layer rule: sellers/ imports stdlib, third-party libraries and core/ only.
It does NOT import from api/ or auth/ -- ownership is expressed as a plain
account id string.
"""
