"""ASGI entry point for the workflow visualizer."""

from visualizer.factory import create_app

app = create_app()


if __name__ == "__main__":
    import uvicorn
    from visualizer.config import get_config

    uvicorn.run(app, **get_config().get_uvicorn_config())
