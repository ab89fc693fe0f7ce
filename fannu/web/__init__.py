"""
Web layer: page routes, JSON API and the public page cache
"""
