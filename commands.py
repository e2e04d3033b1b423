# Quick reference commands (run from repo root). These are comments only; copy/paste as needed.

# Install the project with test dependencies (httpx is needed for TestClient)
# python -m pip install -e ".[test]"

# Run the full test suite (Postgres tests are skipped unless DATABASE_URL is set)
# python -m pytest

# Run focused test files
# python -m pytest tests/test_matcher.py
# python -m pytest tests/test_schedule.py tests/test_models.py
# python -m pytest tests/test_session_lifecycle.py tests/test_mem_storage.py
# python -m pytest tests/test_auth_flow.py tests/test_settings_routes.py tests/test_flex_routes.py
# python -m pytest tests/test_worker.py
# DATABASE_URL=postgresql://... python -m pytest tests/test_postgres_storage.py

# Start the API locally with the in-memory backend
# STORAGE_BACKEND=memory python -m uvicorn app.api:app --reload

# Start the API against Postgres (env vars loaded from .env)
# python -m dotenv run -- python -m uvicorn app.api:app --reload

# Run one worker tick with fake shifts
# TEST_MODE=true python -m dotenv run -- python main.py

# Run the worker continuously (polls every CHECK_INTERVAL seconds)
# TEST_MODE=false CHECK_INTERVAL=5 python -m dotenv run -- python -m worker.main
