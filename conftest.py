"""
Test defaults shared by every suite.
"""

import os

# Keep bcrypt cheap and never reach for a real document store in tests.
os.environ.setdefault("STOREFRONT_BCRYPT_ROUNDS", "4")
os.environ.pop("STOREFRONT_DATABASE_URL", None)
os.environ.pop("STOREFRONT_GATEWAY_ROUTES", None)
