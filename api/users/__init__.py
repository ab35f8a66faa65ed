"""
User records feature: validation, listing filters, persistence and endpoints.
"""
