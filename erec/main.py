from erec.api.main import app

__all__ = ["app"]
