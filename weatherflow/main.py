"""ASGI entry point: ``uvicorn weatherflow.main:app``."""

from .config import load_config
from .factory import create_app

app = create_app(load_config())


if __name__ == "__main__":
    import uvicorn
    from .config import get_config
    uvicorn.run(app, **get_config().get_uvicorn_config())
