"""
GoalForge - an autonomous goal-driven agent.

State a goal in natural language; the agent decomposes it into tasks, executes
them one at a time through a language model, and streams typed progress
messages back to the caller. Runs can be paused, single-stepped and stopped.
"""

__version__ = "0.1.0"

# Load environment variables from project root .env (if present).
# This makes OPENAI_API_KEY etc. available no matter which submodule is imported.
try:
    from pathlib import Path
    from dotenv import load_dotenv

    _repo_root = Path(__file__).resolve().parents[2]
    _env_path = _repo_root / ".env"
    if _env_path.exists():
        load_dotenv(_env_path, override=False)
except Exception:
    # Never fail import due to dotenv loading.
    pass
