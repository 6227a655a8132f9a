"""Global pytest configuration."""

import os

# Set DATABASE_URL for tests before any imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

# Tests never reach the model provider; the factory falls back to the stub client
os.environ["OPENAI_API_KEY"] = ""
