"""
Properties app - owners, tenants and properties managed by an agency.
"""
