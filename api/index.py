"""
Serverless entry point for the Shop Assistant API.

Mangum adapts the ASGI app to the Lambda-style event handler Vercel invokes.
"""

import os
import sys
from pathlib import Path

# The application modules live one directory up
sys.path.insert(0, str(Path(__file__).parent.parent))

os.environ.setdefault("DEBUG", "False")
os.environ.setdefault("VERCEL", "1")

from app import app as application
from mangum import Mangum

# Lifespan is off: configuration problems surface on /health instead of failing cold starts
handler = Mangum(application, lifespan="off")

__all__ = ["handler", "application"]
