"""
Photo gallery service: shared client galleries over Supabase with a local cache.
"""
__version__ = "1.0.0"
