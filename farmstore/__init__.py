"""
Green Africa Farm storefront: cart, checkout and order lifecycle.
"""
__version__ = "1.0.0"
