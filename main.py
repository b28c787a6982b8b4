"""
Storefront Catalog API Entry Point

Use this file for deployment:
  uvicorn main:app --host 0.0.0.0 --port $PORT
"""

from api_server import app  # noqa: F401


# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
