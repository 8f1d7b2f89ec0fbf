from .app import app, build_components, create_app

__all__ = ["app", "build_components", "create_app"]
