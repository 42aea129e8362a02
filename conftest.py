"""Global pytest configuration."""

import os

# Tests never talk to a real completion API, database or Redis unless a fixture wires one up
for _name in ("OPENAI_API_KEY", "OPENAI_BASE_URL", "DATABASE_URL", "REDIS_URL"):
    os.environ.pop(_name, None)
