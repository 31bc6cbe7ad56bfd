"""FastAPI REST API for Hookcast.

This module exposes the webhook management API over HTTP.

Example:
    ```python
    import uvicorn
    from hookcast.api import create_app

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
    ```
"""

from .app import app, create_app
from .router import router

__all__ = [
    "app",
    "create_app",
    "router",
]
