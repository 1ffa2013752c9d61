"""Pytest configuration: ensure env vars and import path are set early.

This runs before any tests, so modules can import without local path hacks.
Also load .env before setting defaults so local overrides are honored.
"""
from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

from dotenv import load_dotenv

# Ensure repository root is on sys.path for local package imports
sys.path.append(str(Path(__file__).resolve().parents[1]))

load_dotenv(override=False)

# Keep logs and default data out of the working tree during test runs
_SCRATCH = Path(tempfile.mkdtemp(prefix="docstore-tests-"))
os.environ.setdefault("DOCSTORE_DATA_DIR", str(_SCRATCH / "data"))
os.environ.setdefault("DOCSTORE_LOG_DIR", str(_SCRATCH / "logs"))
os.environ.setdefault("DOCSTORE_LOG_LEVEL", "debug")
