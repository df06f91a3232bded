"""auth/ -- Authentication and authorization package for the Expense API.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or expenses/.
api/ imports from auth/, not the other way around.
"""
