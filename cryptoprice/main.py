"""Entry point — run with: python -m cryptoprice.main"""
import uvicorn

from cryptoprice.api.v1.app import app  # noqa: F401
from cryptoprice.core.config import settings

if __name__ == "__main__":
    uvicorn.run("cryptoprice.main:app", host=settings.api_host, port=settings.api_port)
