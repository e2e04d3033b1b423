"""
Entry point for local runs.

  python main.py          # background search worker
  python main.py api      # JSON API on PORT (default 8000)
"""
import asyncio
import os
import sys


def run_api() -> None:
    import uvicorn

    uvicorn.run("app.api:app", host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))


def run_worker() -> None:
    from worker.main import main as worker_main

    asyncio.run(worker_main())


if __name__ == "__main__":
    if sys.argv[1:2] == ["api"]:
        run_api()
    else:
        run_worker()
