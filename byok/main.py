# byok/main.py
# Local entry point: python -m byok.main
import uvicorn

from byok.app.main import app  # noqa: F401

if __name__ == "__main__":
    uvicorn.run("byok.app.main:app", host="127.0.0.1", port=8000)
