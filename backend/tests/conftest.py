"""Root conftest — shared test configuration.

Environment is set before any app module is imported: get_settings() is cached
for the whole process.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-length-for-hs256")
# Lowest bcrypt cost keeps password hashing out of the test runtime
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_FORMAT", "text")
